"""acme-issuer command line argument parsing."""
import argparse
import copy
import logging
from typing import Any
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

import configargparse

import acme_issuer
from acme_issuer import configuration
from acme_issuer import util
from acme_issuer._internal import constants
from acme_issuer._internal import plugins

logger = logging.getLogger(__name__)

VERBS = ["issue"]

SHORT_USAGE = """
  acme-issuer [issue] -d DOMAINS -p PATH [options]

Obtain a certificate for DOMAINS, proving control of each of them with
the http-01 (file in the PATH document root) or dns-01 (Route53 TXT
record) challenge, and save it below --config-dir.
"""


def flag_default(name: str) -> Any:
    """Default value for CLI flag ``name``."""
    # Defaults may be mutable.
    return copy.deepcopy(constants.CLI_DEFAULTS[name])


class _DomainsAction(argparse.Action):
    """Action class for parsing domains."""

    def __call__(self, parser: argparse.ArgumentParser, namespace: argparse.Namespace,
                 domain: Union[str, Sequence[Any], None],
                 option_string: Optional[str] = None) -> None:
        """Just wrap add_domains in argparseese."""
        add_domains(namespace, str(domain))


def add_domains(args_or_config: argparse.Namespace, domains: str) -> List[str]:
    """Registers new domains to be used during the current client run.

    Domains are not added to the list of requested domains if they have
    already been registered.

    :param args_or_config: parsed command line arguments
    :type args_or_config: argparse.Namespace
    :param str domain: one or more comma separated domains

    :returns: domains after they have been normalized and validated
    :rtype: `list` of `str`

    """
    validated_domains = util.parse_domains(domains)
    if args_or_config.domains is None:
        args_or_config.domains = []
    for domain in validated_domains:
        if domain not in args_or_config.domains:
            args_or_config.domains.append(domain)
    return validated_domains


def _build_parser() -> configargparse.ArgParser:
    parser = configargparse.ArgParser(
        prog="acme-issuer",
        usage=SHORT_USAGE,
        args_for_setting_config_path=["--config"],
        default_config_files=flag_default("config_files"),
        config_arg_help_message="path to config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))

    parser.add_argument(
        "verb", nargs="?", choices=VERBS, default=VERBS[0],
        help="Action to perform (default: %(default)s)")
    parser.add_argument(
        "--version", action="version",
        version=f"%(prog)s {acme_issuer.__version__}",
        help="show program's version number and exit")

    parser.add_argument(
        "-v", "--verbose", dest="verbose_count", action="count",
        default=flag_default("verbose_count"), help="This flag can be used "
        "multiple times to incrementally increase the verbosity of output, "
        "e.g. -vvv.")
    parser.add_argument(
        "-q", "--quiet", dest="quiet", action="store_true",
        default=flag_default("quiet"),
        help="Silence all output except errors.")
    parser.add_argument(
        "--debug", action="store_true", default=flag_default("debug"),
        help="Show tracebacks in case of errors")
    parser.add_argument(
        "--config-dir", default=flag_default("config_dir"),
        help="Configuration directory, holding the account and issued certificates. "
             "(default: %(default)s)")
    parser.add_argument(
        "--logs-dir", default=flag_default("logs_dir"),
        help="Logs directory. (default: %(default)s)")
    parser.add_argument(
        "--max-log-backups", type=nonnegative_int,
        default=flag_default("max_log_backups"),
        help="Specifies the maximum number of backup logs that should "
             "be kept. Setting this to 0 disables log rotation entirely, "
             "causing acme-issuer to always append to the same log file. "
             "(default: %(default)s)")

    parser.add_argument(
        "-d", "--domains", dest="domains", metavar="DOMAIN",
        action=_DomainsAction, default=flag_default("domains"),
        help="Comma-separated list of domains to obtain a certificate for. "
             "The first one names the certificate key.")
    parser.add_argument(
        "-p", "--path", default=flag_default("path"),
        help="Document root of the web server serving the domains.")
    parser.add_argument(
        "-u", "--user", default=flag_default("user"),
        help="Owner of the challenge files. (default: %(default)s)")
    parser.add_argument(
        "--bits", type=int, default=flag_default("bits"),
        help="Size of the RSA certificate key. (default: %(default)s)")
    parser.add_argument(
        "-c", "--challenge", choices=sorted(plugins.FULFILLERS),
        default=flag_default("challenge"),
        help="Challenge type used to prove control of the domains. "
             "(default: %(default)s)")
    parser.add_argument(
        "--hosted-zone-id", default=flag_default("hosted_zone_id"),
        help="Route53 hosted zone receiving the dns-01 TXT records.")
    parser.add_argument(
        "--propagation-timeout", type=int, default=flag_default("propagation_timeout"),
        help="Seconds to wait for a dns-01 TXT record to be deployed. "
             "(default: %(default)s)")
    parser.add_argument(
        "--preflight-timeout", type=float, default=flag_default("preflight_timeout"),
        help="Seconds allowed for each DNS lookup checking the domains. "
             "(default: %(default)s)")
    return parser


def nonnegative_int(value: str) -> int:
    """Converts value to an int and checks that it is not negative.

    :param str value: value to convert

    :returns: value as a nonnegative int
    :rtype: int

    :raises argparse.ArgumentTypeError: if value isn't a nonnegative int

    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be an integer")

    if int_value < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return int_value


def prepare_and_parse_args(args: List[str]) -> configuration.NamespaceConfig:
    """Returns parsed command line arguments.

    :param list args: command line arguments with the program name removed

    :returns: parsed command line arguments
    :rtype: configuration.NamespaceConfig

    :raises .errors.ConfigurationError: if the arguments are inconsistent

    """
    namespace = _build_parser().parse_args(args)
    return configuration.NamespaceConfig(namespace)

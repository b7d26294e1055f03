"""acme-issuer main entry point."""
import logging
import sys
from typing import List
from typing import Optional
from typing import Union

import acme_issuer
from acme_issuer import configuration
from acme_issuer import errors
from acme_issuer import util
from acme_issuer._internal import cli
from acme_issuer._internal import client
from acme_issuer._internal import constants
from acme_issuer._internal import log

logger = logging.getLogger(__name__)


def make_or_verify_needed_dirs(config: configuration.NamespaceConfig) -> None:
    """Create or verify existence of config and certificate directories.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    :raises .errors.Error: if a directory cannot be created

    """
    for directory in (config.config_dir, config.certs_dir):
        try:
            util.make_or_verify_dir(directory, constants.CONFIG_DIRS_MODE)
        except OSError as error:
            raise errors.Error(util.PERM_ERR_FMT.format(error))


def issue(config: configuration.NamespaceConfig) -> None:
    """Obtain a certificate for the configured domains.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    """
    orchestrator = client.from_config(config)
    lineage_dir = orchestrator.issue(config.domains)
    if not config.quiet:
        print(f"Successfully received certificate for {', '.join(config.domains)}.\n"
              f"Certificate is saved at: {lineage_dir}")


def main(cli_args: Optional[List[str]] = None) -> Optional[Union[str, int]]:
    """Run acme-issuer.

    :param cli_args: command line to acme-issuer, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of acme-issuer
    :rtype: `str` or `int` or `None`

    """
    if not cli_args:
        cli_args = sys.argv[1:]

    log.pre_arg_parse_setup()

    logger.debug("acme-issuer version: %s", acme_issuer.__version__)
    logger.debug("Arguments: %r", cli_args)

    # note: arg parser internally handles --help (and exits afterwards)
    config = cli.prepare_and_parse_args(cli_args)

    log.post_arg_parse_setup(config)
    make_or_verify_needed_dirs(config)

    issue(config)
    return None

"""acme-issuer user-supplied configuration."""
import argparse
import copy
import logging
import os
from typing import Any

from acme_issuer import achallenges
from acme_issuer import errors
from acme_issuer import util
from acme_issuer._internal import constants

logger = logging.getLogger(__name__)


class NamespaceConfig:
    """Configuration wrapper around :class:`argparse.Namespace`.

    Please note that the following attributes are dynamically resolved using
    :attr:`~acme_issuer.configuration.NamespaceConfig.config_dir` and
    relative paths defined in :py:mod:`acme_issuer._internal.constants`:

      - `account_dir`
      - `certs_dir`

    :ivar namespace: Namespace typically produced by
        :meth:`argparse.ArgumentParser.parse_args`.
    :type namespace: :class:`argparse.Namespace`

    """

    def __init__(self, namespace: argparse.Namespace) -> None:
        self.namespace: argparse.Namespace
        # Avoid recursion loop because of the delegation defined in __setattr__
        object.__setattr__(self, 'namespace', namespace)

        self.namespace.config_dir = os.path.abspath(self.namespace.config_dir)
        self.namespace.logs_dir = os.path.abspath(self.namespace.logs_dir)
        if self.namespace.path is not None:
            self.namespace.path = os.path.abspath(self.namespace.path)

        # Check command line parameters sanity, and error out in case of problem.
        _check_config_sanity(self)

    # Delegate any attribute not explicitly defined to the underlying namespace object.
    def __getattr__(self, name: str) -> Any:
        return getattr(self.namespace, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.namespace, name, value)

    @property
    def account_dir(self) -> str:
        """Directory holding the account key and configuration."""
        return os.path.join(self.namespace.config_dir, constants.ACCOUNT_DIR)

    @property
    def certs_dir(self) -> str:
        """Directory holding one subdirectory per issued certificate."""
        return os.path.join(self.namespace.config_dir, constants.CERTS_DIR)

    def __deepcopy__(self, _memo: Any) -> 'NamespaceConfig':
        new_ns = copy.deepcopy(self.namespace)
        return type(self)(new_ns)


def _check_config_sanity(config: NamespaceConfig) -> None:
    """Validate command line options and display error message if
    requirements are not met.

    :param config: NamespaceConfig instance holding user configuration
    :type args: :class:`acme_issuer.configuration.NamespaceConfig`

    """
    # pylint: disable=cyclic-import
    from acme_issuer._internal import plugins

    # Domain checks
    if not config.namespace.domains:
        raise errors.ConfigurationError(
            "At least one domain is required, please use -d/--domains.")
    for domain in config.namespace.domains:
        # This may be redundant, but let's be paranoid
        util.enforce_domain_sanity(domain)
    if len(set(config.namespace.domains)) != len(config.namespace.domains):
        raise errors.ConfigurationError("Domains must be unique.")

    if not config.namespace.path:
        raise errors.ConfigurationError(
            "The document root of the web server is required, please use -p/--path.")

    if config.challenge not in plugins.FULFILLERS:
        raise errors.ConfigurationError(
            f"Unsupported challenge {config.challenge}, choose one of "
            + ", ".join(sorted(plugins.FULFILLERS)))
    if config.challenge == achallenges.DNS01 and not config.hosted_zone_id:
        raise errors.ConfigurationError(
            "The dns-01 challenge requires --hosted-zone-id.")

    if config.bits < 2048:
        raise errors.ConfigurationError(
            f"Unsupported RSA key length {config.bits}, use at least 2048 bits.")

    for timeout in ("propagation_timeout", "preflight_timeout"):
        if getattr(config, timeout) <= 0:
            raise errors.ConfigurationError(
                f"--{timeout.replace('_', '-')} must be a positive number of seconds.")

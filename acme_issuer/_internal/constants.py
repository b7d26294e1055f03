"""acme-issuer constants."""
import logging
import os
from typing import Any
from typing import Dict

CLI_DEFAULTS: Dict[str, Any] = dict(  # noqa
    config_files=[
        "/etc/acme-issuer/cli.ini",
        # https://freedesktop.org/wiki/Software/xdg-user-dirs/
        os.path.join(os.environ.get("XDG_CONFIG_HOME", "~/.config"),
                     "acme-issuer", "cli.ini"),
    ],

    # Main parser
    verbose_count=0,
    quiet=False,
    debug=False,
    max_log_backups=1000,
    config_dir="/etc/acme-issuer",
    logs_dir="/var/log/acme-issuer",

    # Issue
    domains=None,
    path=None,
    user="www-data",
    bits=2048,
    challenge="http-01",
    hosted_zone_id=None,
    propagation_timeout=600,
    preflight_timeout=10,
)
"""Defaults for CLI flags and `acme_issuer.configuration.NamespaceConfig` attributes."""

QUIET_LOGGING_LEVEL = logging.ERROR
"""Logging level to use in quiet mode."""

DEFAULT_LOGGING_LEVEL = logging.WARNING
"""Default logging level to use when not in quiet mode."""

LOG_FILE = "acme-issuer.log"
"""Basename of the rotating log file in ``logs_dir``."""

ACCOUNT_DIR = "account"
"""Directory (relative to ``config_dir``) holding the account key and config."""

ACCOUNT_KEY = "account/key.pem"
"""Account key path, relative to ``config_dir``."""

ACCOUNT_CONFIG = "config.json"
"""Account configuration file (``{"server": ...}``) in `ACCOUNT_DIR`."""

CERTS_DIR = "certs"
"""Directory (relative to ``config_dir``) where issued certificates are saved."""

CERT_KEY = "certs/{0}/key.pem"
"""Certificate key path template, relative to ``config_dir``."""

ISSUANCE_CONFIG = "config.json"
"""Issuance record written next to each certificate, for renewal."""

CONFIG_DIRS_MODE = 0o755
"""Directory mode for ``config_dir`` et al."""

KEY_DIRS_MODE = 0o700
"""Directory mode for directories holding private keys."""

PROPAGATION_POLL_INTERVAL = 1
"""Seconds between two DNS change status checks."""

AUTHZ_MAX_RETRIES = 30
"""Maximum number of polls of an authorization before giving up."""

ISSUANCE_TIMEOUT = 90
"""Seconds to wait for the CA to issue a certificate once requested."""

SELF_VERIFY_TIMEOUT = 30
"""Seconds to wait for the HTTP server during self verification."""

USER_AGENT = "acme-issuer/{0}"
"""User agent sent to the CA."""

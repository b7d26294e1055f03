"""Utilities for all of acme-issuer."""
import atexit
import errno
import ipaddress
import logging
import os
import re
from typing import Any
from typing import Callable
from typing import IO
from typing import List
from typing import Optional

from acme_issuer import errors

logger = logging.getLogger(__name__)


# ANSI SGR escape codes
# Colors text red
ANSI_SGR_RED = "\033[31m"
# Resets output format
ANSI_SGR_RESET = "\033[0m"


PERM_ERR_FMT = os.linesep.join((
    "The following error was encountered:", "{0}",
    "Either run as root, or set --config-dir and --logs-dir to writeable paths."))


# Stores importing process ID to be used by atexit_register()
_INITIAL_PID = os.getpid()


def make_or_verify_dir(directory: str, mode: int = 0o755) -> None:
    """Make sure directory exists.

    :param str directory: Path to a directory.
    :param int mode: Directory mode, used if the directory is created.

    :raises OSError: if invalid or inaccessible file names and
        paths, or other arguments that have the correct type,
        but are not accepted by the operating system.

    """
    try:
        os.makedirs(directory, mode)
    except OSError as exception:
        if exception.errno != errno.EEXIST:
            raise


def safe_open(path: str, mode: str = "w", chmod: Optional[int] = None) -> IO:
    """Safely open a file that must not exist yet.

    :param str path: Path to a file.
    :param str mode: Same os `mode` for `open`.
    :param int chmod: Same as `mode` for `os.open`, uses Python defaults
        if ``None``.

    """
    if chmod is None:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
    else:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_RDWR, chmod)
    return os.fdopen(fd, mode)


def safely_remove(path: str) -> None:
    """Remove a file that may not exist."""
    try:
        os.remove(path)
    except OSError as err:
        if err.errno != errno.ENOENT:
            raise


def parse_domains(domains: str) -> List[str]:
    """Split a comma separated list of domains, keeping input order.

    :param str domains: e.g. ``"example.com, www.example.com"``

    :returns: validated domains, duplicates removed
    :rtype: list

    :raises .errors.ConfigurationError: for invalid domains

    """
    result: List[str] = []
    for domain in domains.split(","):
        domain = domain.strip()
        if not domain:
            continue
        domain = enforce_domain_sanity(domain)
        if domain not in result:
            result.append(domain)
    return result


def enforce_domain_sanity(domain: str) -> str:
    """Method which validates domain value and errors out if
    the requirements are not met.

    :param str domain: Domain to check

    :raises ConfigurationError: for invalid domains and cases where the
        CA will not issue certificates

    :returns: The domain, lower-cased and without trailing dot
    :rtype: str

    """
    try:
        domain.encode('ascii')
    except UnicodeError:
        raise errors.ConfigurationError("Non-ASCII domain names not supported. "
            "To issue for an Internationalized Domain Name, use Punycode.")

    domain = domain.lower()

    # Remove trailing dot
    domain = domain[:-1] if domain.endswith('.') else domain

    # Separately check for odd "domains" like "http://example.com" to fail
    # fast and provide a clear error message
    for scheme in ["http", "https"]:  # Other schemes seem unlikely
        if domain.startswith(f"{scheme}://"):
            raise errors.ConfigurationError(
                f"Requested name {domain} appears to be a URL, not a FQDN. "
                f"Try again without the leading \"{scheme}://\".")

    if domain.startswith("*."):
        raise errors.ConfigurationError(
            f"Requested name {domain} is a wildcard domain, which is not supported.")

    try:
        ipaddress.ip_address(domain)
    except ValueError:
        pass
    else:
        raise errors.ConfigurationError(
            f"Requested name {domain} is an IP address. The certificate authority "
            "will not issue certificates for a bare IP address.")

    # FQDN checks according to RFC 2181: domain name should be less than 255
    # octets (inclusive). And each label is 1 - 63 octets (inclusive).
    # https://tools.ietf.org/html/rfc2181#section-11
    msg = f"Requested domain {domain} is not a FQDN because"
    if len(domain) > 255:
        raise errors.ConfigurationError(f"{msg} it is too long.")
    if not re.match("^[a-z0-9.-]*$", domain):
        raise errors.ConfigurationError(
            f"{domain} contains an invalid character. "
            "Valid characters are A-Z, a-z, 0-9, ., and -.")
    labels = domain.split('.')
    if len(labels) < 2:
        raise errors.ConfigurationError(f"{msg} it needs at least two labels.")
    for label in labels:
        if not label:
            raise errors.ConfigurationError(f"{msg} it contains an empty label.")
        if len(label) > 63:
            raise errors.ConfigurationError(f"{msg} label {label} is too long.")
        if label.startswith("-") or label.endswith("-"):
            raise errors.ConfigurationError(
                f'label "{label}" in domain "{domain}" cannot start or end with "-"')

    return domain


def atexit_register(func: Callable, *args: Any, **kwargs: Any) -> None:
    """Sets func to be called before the program exits.

    Special care is taken to ensure func is only called when the process
    that first imports this module exits rather than any child processes.

    :param function func: function to be called in case of an error

    """
    atexit.register(_atexit_call, func, *args, **kwargs)


def _atexit_call(func: Callable, *args: Any, **kwargs: Any) -> None:
    if _INITIAL_PID == os.getpid():
        func(*args, **kwargs)

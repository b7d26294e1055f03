"""acme-issuer client errors."""
from typing import Iterable


class Error(Exception):
    """Generic acme-issuer client error."""


class ConfigurationError(Error):
    """Configuration sanity error."""


class AccountNotFound(Error):
    """Account not found error."""


class SignalExit(Error):
    """A terminating signal was received inside an ExitHandler block."""


class DnsResolutionError(Error):
    """One or more requested domains could not be resolved.

    :ivar list domains: Unresolvable domains, in the order the failures
        were observed.

    """
    def __init__(self, domains: Iterable[str]) -> None:
        self.domains = list(domains)
        if not self.domains:
            raise ValueError("DnsResolutionError needs at least one domain")
        super().__init__(
            "Couldn't resolve the following domains to an IPv4 record: "
            + ", ".join(self.domains))


class ProtocolViolation(Error):
    """The CA sent data this client must not act upon."""


# Auth Handler Errors
class AuthorizationError(Error):
    """Authorization error."""


class NoSuitableChallenge(AuthorizationError):
    """No combination of challenges this client can solve was offered."""


class SelfVerificationFailed(AuthorizationError):
    """The locally served challenge did not match the expected proof."""


class ChallengeTimeout(AuthorizationError):
    """The CA did not finish checking a challenge in time."""


# Plugin Errors
class PluginError(Error):
    """Challenge fulfiller error."""


class PropagationTimeout(PluginError):
    """A published DNS record did not propagate before the deadline."""


# Storage Errors
class KeyStoreError(Error):
    """Generic `.KeyStore` error."""


class KeyNotFound(KeyStoreError):
    """No key stored at the requested path."""


class CertStorageError(Error):
    """Generic `.CertificateStore` error."""


class CertificateNotFound(CertStorageError):
    """No certificate stored under the requested name."""


class CertificateRequestFailed(Error):
    """The CA rejected or never completed the certificate request."""

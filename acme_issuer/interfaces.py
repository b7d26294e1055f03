"""acme-issuer collaborator interfaces.

The issuance engine only talks to the outside world through these
capabilities. Concrete implementations live in `acme_issuer._internal`.

"""
from abc import ABCMeta
from abc import abstractmethod
from typing import List
from typing import Tuple

from acme_issuer.achallenges import Authorization
from acme_issuer.achallenges import CertificateBundle
from acme_issuer.achallenges import KeyPair


class AcmeDirectory(metaclass=ABCMeta):
    """Session with an ACME CA, bound to one account."""

    @abstractmethod
    def request_challenges(self, domain: str) -> Tuple[str, Authorization]:  # pragma: no cover
        """Obtain a fresh authorization for ``domain``.

        :returns: authorization location and the authorization itself
        :rtype: tuple

        """
        raise NotImplementedError()

    @abstractmethod
    def answer_challenge(self, uri: str, key_authz: str) -> None:  # pragma: no cover
        """Tell the CA the challenge at ``uri`` is ready to be checked."""
        raise NotImplementedError()

    @abstractmethod
    def poll_for_challenge(self, location: str) -> None:  # pragma: no cover
        """Wait until the authorization at ``location`` is valid.

        :raises .errors.AuthorizationError: if the CA declared it invalid
        :raises .errors.ChallengeTimeout: if the retry budget is exhausted

        """
        raise NotImplementedError()

    @abstractmethod
    def request_certificate(self, key_pair: KeyPair,
                            domains: List[str]) -> str:  # pragma: no cover
        """Ask for a certificate covering ``domains``.

        :returns: location to poll for the certificate
        :rtype: str

        :raises .errors.CertificateRequestFailed: if the CA rejects it

        """
        raise NotImplementedError()

    @abstractmethod
    def poll_for_certificate(self, location: str) -> CertificateBundle:  # pragma: no cover
        """Wait for the certificate requested at ``location``.

        :raises .errors.CertificateRequestFailed: if issuance fails

        """
        raise NotImplementedError()

    @abstractmethod
    def self_verify(self, domain: str, token: str, proof: str) -> None:  # pragma: no cover
        """Check that ``proof`` is served for ``token`` over HTTP.

        :raises .errors.SelfVerificationFailed: on mismatch

        """
        raise NotImplementedError()


class KeyStore(metaclass=ABCMeta):
    """Private key storage, addressed by relative path."""

    @abstractmethod
    def get(self, path: str) -> KeyPair:  # pragma: no cover
        """Load the key pair stored at ``path``.

        :raises .errors.KeyNotFound: if nothing is stored there
        :raises .errors.KeyStoreError: if the stored key is unusable

        """
        raise NotImplementedError()

    @abstractmethod
    def put(self, path: str, key_pair: KeyPair) -> KeyPair:  # pragma: no cover
        """Store ``key_pair`` at ``path`` and return the stored pair."""
        raise NotImplementedError()


class CertificateStore(metaclass=ABCMeta):
    """Issued certificate storage."""

    @abstractmethod
    def get(self, name: str) -> CertificateBundle:  # pragma: no cover
        """Load the bundle stored under ``name``.

        :raises .errors.CertificateNotFound: if nothing is stored there

        """
        raise NotImplementedError()

    @abstractmethod
    def put(self, bundle: CertificateBundle) -> str:  # pragma: no cover
        """Store ``bundle`` and return the directory it was written to."""
        raise NotImplementedError()


class ChallengeFileStore(metaclass=ABCMeta):
    """Token files served under ``/.well-known/acme-challenge/``."""

    @abstractmethod
    def put(self, token: str, payload: str, user: str) -> None:  # pragma: no cover
        """Write ``payload`` as the file named ``token``, owned by ``user``."""
        raise NotImplementedError()

    @abstractmethod
    def delete(self, token: str) -> None:  # pragma: no cover
        """Remove the file named ``token``. Removing a missing file is a no-op."""
        raise NotImplementedError()


class DnsRecordPublisher(metaclass=ABCMeta):
    """DNS hosting provider able to publish TXT records."""

    @abstractmethod
    def upsert_txt(self, zone_id: str, name: str, value: str) -> str:  # pragma: no cover
        """Create or update a TXT record.

        :returns: identifier of the change, for `change_status`
        :rtype: str

        """
        raise NotImplementedError()

    @abstractmethod
    def delete_txt(self, zone_id: str, name: str, value: str) -> str:  # pragma: no cover
        """Remove a TXT record value previously published with `upsert_txt`."""
        raise NotImplementedError()

    @abstractmethod
    def change_status(self, change_id: str) -> str:  # pragma: no cover
        """Report ``"pending"`` or ``"deployed"`` for a change."""
        raise NotImplementedError()

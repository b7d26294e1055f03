"""Common code for challenge fulfillers."""
from abc import ABCMeta
from abc import abstractmethod
import logging
from typing import Optional

from acme_issuer import configuration

logger = logging.getLogger(__name__)


class ArtifactHandle:
    """External artifact (served file, DNS record...) proving control of a domain.

    :ivar str domain: Domain being authorized.
    :ivar str token: Challenge token.
    :ivar str key_authz: Key authorization for ``token``.
    :ivar str validation: Proof material derived from ``key_authz``.
    :ivar bool provisioned: The artifact may exist outside of this process.
    :ivar bool cleaned: The artifact has been removed.

    """
    def __init__(self, domain: str, token: str, key_authz: str, validation: str) -> None:
        self.domain = domain
        self.token = token
        self.key_authz = key_authz
        self.validation = validation
        self.provisioned = False
        self.cleaned = False

    def __repr__(self) -> str:
        return (f"<{self.__class__.__name__} {self.domain} token={self.token} "
                f"provisioned={self.provisioned} cleaned={self.cleaned}>")


class ChallengeFulfiller(metaclass=ABCMeta):
    """Provision and remove the artifact for one challenge type.

    Subclasses set `typ`, derive their proof in `validation`, create the
    artifact in `provision` and remove it in `_cleanup`. `provision` must
    set ``handle.provisioned`` as soon as anything exists outside of the
    process, so that `cleanup` removes partially provisioned artifacts.

    """
    typ: str = NotImplemented
    """Challenge type solved, e.g. ``"http-01"``."""

    self_verify = False
    """Whether the artifact can be checked locally before notifying the CA."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.logger = log if log is not None else logger

    @classmethod
    @abstractmethod
    def from_config(cls, config: configuration.NamespaceConfig,
                    log: Optional[logging.Logger] = None
                    ) -> 'ChallengeFulfiller':  # pragma: no cover
        """Build the fulfiller and its collaborators from the configuration."""
        raise NotImplementedError()

    @abstractmethod
    def validation(self, key_authz: str) -> str:  # pragma: no cover
        """Derive the proof material published for ``key_authz``."""
        raise NotImplementedError()

    def prepare(self, domain: str, token: str, key_authz: str) -> ArtifactHandle:
        """Compute the proof for a challenge, without touching anything external."""
        return ArtifactHandle(domain, token, key_authz, self.validation(key_authz))

    @abstractmethod
    def provision(self, handle: ArtifactHandle) -> None:  # pragma: no cover
        """Publish the artifact described by ``handle``.

        :raises .errors.PluginError: if the artifact cannot be published

        """
        raise NotImplementedError()

    def cleanup(self, handle: ArtifactHandle) -> None:
        """Remove the artifact described by ``handle``.

        Calling this several times, or for an artifact that was never
        provisioned, is harmless.

        """
        if not handle.provisioned or handle.cleaned:
            return
        self.logger.debug("Cleaning up %r", handle)
        self._cleanup(handle)
        handle.cleaned = True

    @abstractmethod
    def _cleanup(self, handle: ArtifactHandle) -> None:  # pragma: no cover
        raise NotImplementedError()

"""Per-domain authorization state machine."""
import enum
import logging
from typing import Optional

import josepy as jose

from acme_issuer import achallenges
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer._internal import error_handler
from acme_issuer._internal import selection
from acme_issuer._internal.plugins import common as plugin_common

logger = logging.getLogger(__name__)


class State(enum.Enum):
    """Progress of a `DomainAuthorizer`."""
    REQUESTING = "requesting"
    SELECTING = "selecting"
    PROVISIONING = "provisioning"
    SELF_CHECKING = "self-checking"
    NOTIFYING = "notifying"
    POLLING = "polling"
    CLEANING = "cleaning"
    DONE = "done"
    FAILED = "failed"


class DomainAuthorizer:
    """Prove control of one domain to the CA.

    The artifact published by the fulfiller is removed exactly once,
    whether the authorization succeeds, fails or is interrupted by a
    signal.

    :ivar acme: `.AcmeDirectory` bound to the account.
    :ivar fulfiller: `.ChallengeFulfiller` for the desired challenge type.
    :ivar account_key: Account `josepy.JWK`, used for key authorizations.
    :ivar State state: Last state entered.

    """
    def __init__(self, acme: interfaces.AcmeDirectory,
                 fulfiller: plugin_common.ChallengeFulfiller, account_key: jose.JWK,
                 log: Optional[logging.Logger] = None) -> None:
        self.acme = acme
        self.fulfiller = fulfiller
        self.account_key = account_key
        self.logger = log if log is not None else logger
        self.state: Optional[State] = None

    def authorize(self, domain: str) -> None:
        """Obtain a valid authorization for ``domain``.

        :raises .errors.Error: if the authorization could not be obtained

        """
        try:
            self._authorize(domain)
        except Exception:
            self.state = State.FAILED
            raise
        self.state = State.DONE

    def _authorize(self, domain: str) -> None:
        self.state = State.REQUESTING
        location, authz = self.acme.request_challenges(domain)
        if authz.status == achallenges.STATUS_VALID:
            self.logger.info("Authorization for %s is still valid, skipping challenge",
                             domain)
            return
        if authz.status == achallenges.STATUS_INVALID:
            raise errors.AuthorizationError(
                f"The CA returned an invalid authorization for {domain}.")

        self.state = State.SELECTING
        offer = selection.select_challenge(authz, self.fulfiller.typ)
        token = achallenges.check_token(offer.token)
        key_authz = achallenges.key_authorization(token, self.account_key)
        handle = self.fulfiller.prepare(domain, token, key_authz)

        # Starting now, the artifact will be cleaned at the end no matter what.
        with error_handler.ExitHandler(self._cleanup, handle):
            self.state = State.PROVISIONING
            self.logger.info("Performing the %s challenge for %s",
                             self.fulfiller.typ, domain)
            self.fulfiller.provision(handle)

            if self.fulfiller.self_verify:
                self.state = State.SELF_CHECKING
                self.acme.self_verify(domain, token, handle.validation)

            self.state = State.NOTIFYING
            self.acme.answer_challenge(offer.uri, key_authz)

            self.state = State.POLLING
            self.logger.info("Waiting for verification of %s...", domain)
            self.acme.poll_for_challenge(location)
            return

        raise errors.Error(f"Interrupted while authorizing {domain}.")

    def _cleanup(self, handle: plugin_common.ArtifactHandle) -> None:
        self.state = State.CLEANING
        self.fulfiller.cleanup(handle)

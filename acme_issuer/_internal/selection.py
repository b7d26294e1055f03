"""Choose which CA-offered challenge to solve."""
import logging

from acme_issuer import errors
from acme_issuer.achallenges import Authorization
from acme_issuer.achallenges import ChallengeOffer

logger = logging.getLogger(__name__)


def select_challenge(authz: Authorization, desired_type: str) -> ChallengeOffer:
    """Pick the offer of type ``desired_type`` that alone satisfies ``authz``.

    Only offers listed as a singleton combination qualify: combinations
    requiring several challenges are not supported. Among qualifying
    offers the first in CA order is returned.

    :param .Authorization authz: Authorization sent by the CA.
    :param str desired_type: Challenge type, e.g. ``"http-01"``.

    :returns: the chosen offer
    :rtype: .ChallengeOffer

    :raises .errors.NoSuitableChallenge: if no offer qualifies

    """
    singletons = {combo[0] for combo in authz.combinations if len(combo) == 1}
    for offer in authz.offers:
        if offer.typ == desired_type and offer.index in singletons:
            logger.debug("Selected %s challenge #%d for %s",
                         offer.typ, offer.index, authz.domain)
            return offer
    raise _report_no_suitable_challenge(authz, desired_type)


def _report_no_suitable_challenge(authz: Authorization,
                                  desired_type: str) -> errors.NoSuitableChallenge:
    """Logs and return a raisable error reporting that no challenge can be used."""
    offered = ", ".join(sorted({offer.typ for offer in authz.offers})) or "none"
    msg = (f"Couldn't find any combination of challenges which this client can "
           f"solve for {authz.domain}: wanted {desired_type}, offered {offered}.")
    logger.critical(msg)
    return errors.NoSuitableChallenge(msg)

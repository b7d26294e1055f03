"""Client view of CA authorizations and challenges.

The CA-facing wire objects (:mod:`acme.messages`) are translated by the
`.AcmeDirectory` into the small immutable records defined here, so the
issuance engine never depends on a particular protocol version::

  from acme_issuer import achallenges

  offer = achallenges.ChallengeOffer(
      index=0, typ="http-01", token="evaGxfADs6pSRb2LAv9IZf17Dt3juxGJ-PCt92wr-oA",
      uri="https://ca.example/chall/1")
  authz = achallenges.Authorization(
      domain="example.com", status="pending", offers=(offer,), combinations=((0,),))

"""
import collections
import logging
import re
from typing import Optional
from typing import Sequence
from typing import Tuple

import josepy as jose
from cryptography.hazmat.primitives import hashes

from acme_issuer import errors

logger = logging.getLogger(__name__)

HTTP01 = "http-01"
DNS01 = "dns-01"

STATUS_PENDING = "pending"
STATUS_VALID = "valid"
STATUS_INVALID = "invalid"

TOKEN_RE = re.compile(r"[A-Za-z0-9_-]+")
"""Tokens are base64url without padding (RFC 8555, section 8.1)."""

KeyPair = collections.namedtuple("KeyPair", "private_key public_key")
# Note: both members are PEM encoded bytes


class ChallengeOffer(jose.ImmutableMap):
    """One challenge offered by the CA in an `Authorization`.

    :ivar int index: Position of the offer in the authorization.
    :ivar str typ: Challenge type, e.g. ``"http-01"``.
    :ivar str token: Opaque token chosen by the CA.
    :ivar str uri: URL to post the challenge answer to.

    """
    __slots__ = ('index', 'typ', 'token', 'uri')


class Authorization(jose.ImmutableMap):
    """CA authorization for one domain.

    :ivar str domain: Identifier being authorized.
    :ivar str status: ``pending``, ``valid``, ``invalid``...
    :ivar tuple offers: `ChallengeOffer` instances, in CA order.
    :ivar tuple combinations: Tuples of offer indices, each of which is
        sufficient to prove control of ``domain``.

    """
    __slots__ = ('domain', 'status', 'offers', 'combinations')

    @classmethod
    def from_offers(cls, domain: str, status: str, offers: Sequence[ChallengeOffer],
                    combinations: Optional[Sequence[Sequence[int]]] = None
                    ) -> 'Authorization':
        """Build an authorization, defaulting to one combination per offer.

        Servers implementing RFC 8555 no longer send ``combinations``:
        any single challenge is then sufficient.

        """
        offers = tuple(offers)
        if combinations is None:
            combos: Tuple[Tuple[int, ...], ...] = tuple((offer.index,) for offer in offers)
        else:
            combos = tuple(tuple(combo) for combo in combinations)
        return cls(domain=domain, status=status, offers=offers, combinations=combos)


class CertificateBundle(jose.ImmutableMap):
    """Issued certificate chain.

    :ivar tuple certificates: PEM encoded certificates, leaf first.

    """
    __slots__ = ('certificates',)

    @property
    def cert_pem(self) -> str:
        """The leaf certificate."""
        return self.certificates[0]

    @property
    def chain_pem(self) -> str:
        """Intermediate certificates, without the leaf."""
        return "".join(self.certificates[1:])

    @property
    def fullchain_pem(self) -> str:
        """Leaf followed by the intermediates."""
        return "".join(self.certificates)


def check_token(token: str) -> str:
    """Reject tokens that are not safe to use as file or record names.

    :param str token: Token sent by the CA.

    :returns: ``token``, unchanged
    :rtype: str

    :raises .errors.ProtocolViolation: if the token has invalid syntax

    """
    if not isinstance(token, str) or not TOKEN_RE.fullmatch(token):
        raise errors.ProtocolViolation(f"Protocol Violation: Invalid Token {token!r}")
    return token


def key_authorization(token: str, account_key: jose.JWK) -> str:
    """Bind ``token`` to the account key.

    :param str token: Challenge token, already checked with `check_token`.
    :param JWK account_key: Account key, private or public.

    :returns: ``token + "." + base64url(thumbprint(account_key))``
    :rtype: str

    """
    thumbprint = account_key.thumbprint(hash_function=hashes.SHA256)
    return f"{token}.{jose.b64encode(thumbprint).decode()}"

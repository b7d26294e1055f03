"""RFC 8555 implementation of `.AcmeDirectory` on top of :mod:`acme`."""
import datetime
import logging
import time
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

import josepy as jose
import requests

from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages
from acme_issuer import achallenges
from acme_issuer import crypto_util
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer._internal import constants

logger = logging.getLogger(__name__)

WHITESPACE_CUTSET = "\n\r\t "
"""Whitespace characters which should be ignored at the end of the body."""


class AcmeV2Directory(interfaces.AcmeDirectory):
    """One certificate order for a fixed set of domains.

    The order is created on the first request, so that the CA returns one
    authorization per domain. Authorizations and challenges handed out are
    remembered by location and URI, and answered or polled later.

    The CA is not contacted until the first request: ``open_client`` is
    called then, once.

    :ivar josepy.JWK account_key: Account key.
    :ivar list domains: Identifiers of the order.
    :ivar int max_retries: Maximum polls of an authorization.

    """
    def __init__(self, open_client: Callable[[], acme_client.ClientV2],
                 account_key: jose.JWK, domains: Sequence[str],
                 max_retries: int = constants.AUTHZ_MAX_RETRIES,
                 log: Optional[logging.Logger] = None) -> None:
        self._open_client = open_client
        self._client: Optional[acme_client.ClientV2] = None
        self.account_key = account_key
        self.domains = list(domains)
        self.max_retries = max_retries
        self.logger = log if log is not None else logger
        self._orderr: Optional[messages.OrderResource] = None
        self._authzrs: Dict[str, messages.AuthorizationResource] = {}
        self._challbs: Dict[str, messages.ChallengeBody] = {}

    @property
    def client(self) -> acme_client.ClientV2:
        """`acme.client.ClientV2` bound to the account, opened on first use."""
        if self._client is None:
            self._client = self._open_client()
        return self._client

    def request_challenges(self, domain: str) -> Tuple[str, achallenges.Authorization]:
        orderr = self._get_order()
        for authzr in orderr.authorizations:
            if authzr.body.identifier.value == domain:
                break
        else:
            raise errors.ProtocolViolation(
                f"The CA returned no authorization for {domain}.")

        self._authzrs[authzr.uri] = authzr
        offers = []
        for index, challb in enumerate(authzr.body.challenges):
            jobj = challb.chall.to_partial_json()
            offers.append(achallenges.ChallengeOffer(
                index=index, typ=jobj.get("type"), token=jobj.get("token", ""),
                uri=challb.uri))
            self._challbs[challb.uri] = challb
        authz = achallenges.Authorization.from_offers(
            domain, authzr.body.status.name, offers,
            getattr(authzr.body, "combinations", None))
        self.logger.debug("Authorization %s for %s is %s, offering %s", authzr.uri,
                          domain, authz.status, ", ".join(offer.typ for offer in offers))
        return authzr.uri, authz

    def answer_challenge(self, uri: str, key_authz: str) -> None:
        try:
            challb = self._challbs[uri]
        except KeyError:
            raise errors.ProtocolViolation(f"Unknown challenge {uri}.")
        response = challb.chall.response(self.account_key)
        if response.key_authorization != key_authz:
            raise errors.AuthorizationError(
                f"Key authorization for challenge {uri} does not match the account key.")
        # acme reports network failures as ValueError
        try:
            self.client.answer_challenge(challb, response)
        except (acme_errors.Error, ValueError) as error:
            raise errors.AuthorizationError(f"Unable to answer challenge {uri}: {error}")

    def poll_for_challenge(self, location: str) -> None:
        authzr = self._authzrs[location]
        domain = authzr.body.identifier.value
        # Give an initial second to the ACME CA server to check the authorization
        sleep_seconds: float = 1
        for _ in range(self.max_retries):
            if sleep_seconds > 0:
                time.sleep(sleep_seconds)
            try:
                authzr, response = self.client.poll(authzr)
            except (acme_errors.Error, ValueError) as error:
                raise errors.AuthorizationError(
                    f"Unable to poll authorization for {domain}: {error}")
            self._authzrs[location] = authzr

            if authzr.body.status == messages.STATUS_VALID:
                self.logger.info("Challenge passed for domain %s", domain)
                return
            if authzr.body.status == messages.STATUS_INVALID:
                self.logger.info("Challenge failed for domain %s", domain)
                raise errors.AuthorizationError(_failed_authzr_msg(authzr))

            # Be merciful with the ACME server CA, check the Retry-After header.
            retry_after = self.client.retry_after(response, 3)
            sleep_seconds = (retry_after - datetime.datetime.now()).total_seconds()

        raise errors.ChallengeTimeout(
            f"The authorization for {domain} was not finalized by the CA "
            f"after {self.max_retries} attempts.")

    def request_certificate(self, key_pair: achallenges.KeyPair, domains: List[str]) -> str:
        if set(domains) != set(self.domains):
            raise errors.CertificateRequestFailed(
                "Requested domains differ from the ones of the order.")
        orderr = self._get_order()
        csr_pem = crypto_util.make_csr(key_pair, domains)
        try:
            self._orderr = self.client.begin_finalization(orderr.update(csr_pem=csr_pem))
        except (acme_errors.Error, ValueError) as error:
            raise errors.CertificateRequestFailed(
                f"The CA rejected the certificate request: {error}")
        self.logger.debug("Order %s finalized", self._orderr.uri)
        return self._orderr.uri

    def poll_for_certificate(self, location: str) -> achallenges.CertificateBundle:
        orderr = self._orderr
        if orderr is None or orderr.uri != location:
            raise errors.CertificateRequestFailed(f"Unknown order {location}.")
        deadline = datetime.datetime.now() + datetime.timedelta(
            seconds=constants.ISSUANCE_TIMEOUT)
        try:
            orderr = self.client.poll_finalization(orderr, deadline)
        except (acme_errors.Error, ValueError) as error:
            raise errors.CertificateRequestFailed(
                f"The certificate could not be obtained: {error}")
        self._orderr = orderr
        return crypto_util.bundle_from_fullchain(orderr.fullchain_pem)

    def self_verify(self, domain: str, token: str, proof: str) -> None:
        url = f"http://{domain}/.well-known/acme-challenge/{token}"
        self.logger.debug("Verifying %s...", url)
        try:
            http_response = requests.get(url, timeout=constants.SELF_VERIFY_TIMEOUT)
        except requests.exceptions.RequestException as error:
            raise errors.SelfVerificationFailed(f"Unable to reach {url}: {error}")
        self.logger.debug("Received %s: %s. Headers: %s", http_response,
                          http_response.text, http_response.headers)

        challenge_response = http_response.text.rstrip(WHITESPACE_CUTSET)
        if challenge_response != proof:
            raise errors.SelfVerificationFailed(
                f"Self verification failed for {domain}: {url} returned "
                f"{challenge_response!r} instead of the key authorization.")

    def _get_order(self) -> messages.OrderResource:
        if self._orderr is None:
            self._orderr = self._new_order()
        return self._orderr

    def _new_order(self) -> messages.OrderResource:
        """Create an order for `domains`, without a CSR yet."""
        directory = self.client.directory
        order = messages.NewOrder(identifiers=[
            messages.Identifier(typ=messages.IDENTIFIER_FQDN, value=domain)
            for domain in self.domains])
        try:
            response = self.client.net.post(directory["newOrder"], order,
                                            new_nonce_url=directory["newNonce"])
            body = messages.Order.from_json(response.json())
            authorizations = []
            for url in body.authorizations:
                authz_response = self.client.net.post(url, None,
                                                      new_nonce_url=directory["newNonce"])
                authorizations.append(messages.AuthorizationResource(
                    body=messages.Authorization.from_json(authz_response.json()),
                    uri=url))
        except (acme_errors.Error, ValueError) as error:
            raise errors.AuthorizationError(f"Unable to create a new order: {error}")
        self.logger.debug("Created order %s for %s", response.headers.get("Location"),
                          ", ".join(self.domains))
        return messages.OrderResource(
            body=body, uri=response.headers.get("Location"),
            authorizations=authorizations)


def _failed_authzr_msg(authzr: messages.AuthorizationResource) -> str:
    problems = [str(challb.error) for challb in authzr.body.challenges
                if challb.error is not None]
    msg = f"Challenge failed for domain {authzr.body.identifier.value}"
    if problems:
        msg += ": " + "; ".join(problems)
    return msg

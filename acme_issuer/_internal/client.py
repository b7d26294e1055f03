"""Issue a certificate, from DNS checks to the stored chain."""
import functools
import logging
import os
from typing import List
from typing import Optional

import josepy as jose

from acme_issuer import configuration
from acme_issuer import interfaces
from acme_issuer._internal import account
from acme_issuer._internal import acme_directory
from acme_issuer._internal import auth_handler
from acme_issuer._internal import constants
from acme_issuer._internal import key_material
from acme_issuer._internal import plugins
from acme_issuer._internal import preflight as preflight_
from acme_issuer._internal import storage
from acme_issuer._internal.plugins import common as plugin_common

logger = logging.getLogger(__name__)


class IssuanceOrchestrator:
    """Obtain and store one certificate for a list of domains.

    Domains are authorized one after the other, in input order. The first
    failure aborts the issuance: no certificate is requested unless every
    domain was authorized.

    :ivar config: `.NamespaceConfig` of the invocation.
    :ivar acme: `.AcmeDirectory` bound to the account.
    :ivar account_key: Account `josepy.JWK`.
    :ivar fulfiller: `.ChallengeFulfiller` for ``config.challenge``.
    :ivar key_store: `.KeyStore` rooted at ``config.config_dir``.
    :ivar cert_store: `.CertificateStore` rooted at ``config.certs_dir``.
    :ivar preflight: `.DnsPreflightChecker`.

    """
    def __init__(self, config: configuration.NamespaceConfig,
                 acme: interfaces.AcmeDirectory, account_key: jose.JWK,
                 fulfiller: plugin_common.ChallengeFulfiller,
                 key_store: interfaces.KeyStore, cert_store: interfaces.CertificateStore,
                 preflight: Optional[preflight_.DnsPreflightChecker] = None,
                 log: Optional[logging.Logger] = None) -> None:
        self.config = config
        self.acme = acme
        self.account_key = account_key
        self.fulfiller = fulfiller
        self.key_store = key_store
        self.cert_store = cert_store
        self.logger = log if log is not None else logger
        if preflight is None:
            preflight = preflight_.DnsPreflightChecker(
                lifetime=config.preflight_timeout, log=self.logger.getChild("preflight"))
        self.preflight = preflight

    def issue(self, domains: List[str]) -> str:
        """Obtain a certificate for ``domains`` and store it.

        :param list domains: Domains to include, the first one names the
            key and the issuance record.

        :returns: directory the certificate was saved to
        :rtype: str

        :raises .errors.Error: if any step fails

        """
        primary = domains[0]
        self.preflight.check(domains)

        for domain in domains:
            authorizer = auth_handler.DomainAuthorizer(
                self.acme, self.fulfiller, self.account_key,
                log=self.logger.getChild("authorizer"))
            authorizer.authorize(domain)
        self.logger.info("All %d domain(s) authorized", len(domains))

        resolver = key_material.KeyMaterialResolver(
            self.key_store, log=self.logger.getChild("keys"))
        key_pair = resolver.resolve(constants.CERT_KEY.format(primary), self.config.bits)

        self.logger.info("Requesting a certificate for %s", ", ".join(domains))
        location = self.acme.request_certificate(key_pair, domains)
        bundle = self.acme.poll_for_certificate(location)
        lineage_dir = self.cert_store.put(bundle)

        storage.save_issuance_config(
            os.path.join(self.config.certs_dir, primary, constants.ISSUANCE_CONFIG),
            {
                "domains": domains,
                "path": self.config.path,
                "user": self.config.user,
                "bits": self.config.bits,
                "challenge": self.config.challenge,
                "hosted_zone_id": self.config.hosted_zone_id,
            })
        self.logger.info("Certificate saved to %s", lineage_dir)
        return lineage_dir


def from_config(config: configuration.NamespaceConfig,
                log: Optional[logging.Logger] = None) -> IssuanceOrchestrator:
    """Wire the file stores, the account and the CA session for ``config``.

    Only local files are read here. The CA session is opened on the first
    ACME request, after the DNS preflight passed.

    :raises .errors.AccountNotFound: if no account was registered

    """
    log = log if log is not None else logger
    key_store = storage.FileKeyStore(config.config_dir)
    account_key, server = account.load_account(config, key_store)
    acme = acme_directory.AcmeV2Directory(
        functools.partial(account.open_client, account_key, server), account_key,
        config.domains, log=log.getChild("acme"))
    fulfiller = plugins.FULFILLERS[config.challenge].from_config(
        config, log=log.getChild(config.challenge))
    return IssuanceOrchestrator(
        config, acme, account_key, fulfiller, key_store,
        storage.FileCertificateStore(config.certs_dir), log=log)

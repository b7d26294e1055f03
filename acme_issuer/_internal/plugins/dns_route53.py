"""Route53 fulfiller for dns-01 challenges."""
import hashlib
import logging
import time
from typing import Any
from typing import Optional

import boto3
from botocore.exceptions import ClientError
from botocore.exceptions import NoCredentialsError
import josepy as jose

from acme_issuer import achallenges
from acme_issuer import configuration
from acme_issuer import errors
from acme_issuer import interfaces
from acme_issuer._internal import constants
from acme_issuer._internal.plugins import common

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "To use acme-issuer with dns-01, configure credentials as described at "
    "https://boto3.readthedocs.io/en/latest/guide/configuration.html#best-practices-for-configuring-credentials "  # pylint: disable=line-too-long
    "and add the necessary permissions for Route53 access.")

LABEL = "_acme-challenge"
"""Label prepended to the domain to form the validation record name."""


class Route53Publisher(interfaces.DnsRecordPublisher):
    """Publish TXT records in an AWS Route53 hosted zone.

    :ivar r53: boto3 Route53 client.

    """
    ttl = 10

    def __init__(self, client: Optional[Any] = None) -> None:
        self.r53 = client if client is not None else boto3.client("route53")

    def upsert_txt(self, zone_id: str, name: str, value: str) -> str:
        return self._change_txt_record("UPSERT", zone_id, name, value)

    def delete_txt(self, zone_id: str, name: str, value: str) -> str:
        return self._change_txt_record("DELETE", zone_id, name, value)

    def change_status(self, change_id: str) -> str:
        """https://docs.aws.amazon.com/Route53/latest/APIReference/API_GetChange.html"""
        try:
            response = self.r53.get_change(Id=change_id)
        except (NoCredentialsError, ClientError) as e:
            logger.debug('Encountered error while checking change %s: %s',
                         change_id, e, exc_info=True)
            raise errors.PluginError("\n".join([str(e), INSTRUCTIONS]))
        if response["ChangeInfo"]["Status"] == "INSYNC":
            return "deployed"
        return "pending"

    def _change_txt_record(self, action: str, zone_id: str, name: str, value: str) -> str:
        try:
            response = self.r53.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={
                    "Comment": "acme-issuer certificate validation " + action,
                    "Changes": [
                        {
                            "Action": action,
                            "ResourceRecordSet": {
                                "Name": name,
                                "Type": "TXT",
                                "TTL": self.ttl,
                                "ResourceRecords": [{"Value": f'"{value}"'}],
                            }
                        }
                    ]
                }
            )
        except (NoCredentialsError, ClientError) as e:
            logger.debug('Encountered error during %s of %s: %s', action, name, e,
                         exc_info=True)
            raise errors.PluginError("\n".join([str(e), INSTRUCTIONS]))
        return response["ChangeInfo"]["Id"]


class Dns01Fulfiller(common.ChallengeFulfiller):
    """Publish ``_acme-challenge.<domain>`` TXT records and wait for them.

    :ivar publisher: `.DnsRecordPublisher` holding the hosted zone.
    :ivar str zone_id: Hosted zone receiving the records.
    :ivar float propagation_timeout: Seconds to wait for a change to deploy.
    :ivar float poll_interval: Seconds between two status checks.

    """
    typ = achallenges.DNS01

    def __init__(self, publisher: interfaces.DnsRecordPublisher, zone_id: str,
                 propagation_timeout: float = 600,
                 poll_interval: float = constants.PROPAGATION_POLL_INTERVAL,
                 log: Optional[logging.Logger] = None) -> None:
        super().__init__(log)
        self.publisher = publisher
        self.zone_id = zone_id
        self.propagation_timeout = propagation_timeout
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls, config: configuration.NamespaceConfig,
                    log: Optional[logging.Logger] = None) -> 'Dns01Fulfiller':
        return cls(Route53Publisher(), config.hosted_zone_id,
                   propagation_timeout=config.propagation_timeout, log=log)

    def validation(self, key_authz: str) -> str:
        return jose.b64encode(hashlib.sha256(key_authz.encode()).digest()).decode()

    @staticmethod
    def validation_domain_name(domain: str) -> str:
        """Name of the TXT record checked by the CA for ``domain``."""
        return f"{LABEL}.{domain}"

    def provision(self, handle: common.ArtifactHandle) -> None:
        name = self.validation_domain_name(handle.domain)
        self.logger.info("Creating TXT record %s in hosted zone %s",
                         name, self.zone_id)
        change_id = self.publisher.upsert_txt(self.zone_id, name, handle.validation)
        handle.provisioned = True
        self._wait_for_change(change_id)

    def _cleanup(self, handle: common.ArtifactHandle) -> None:
        name = self.validation_domain_name(handle.domain)
        self.logger.debug("Deleting TXT record %s", name)
        self.publisher.delete_txt(self.zone_id, name, handle.validation)

    def _wait_for_change(self, change_id: str) -> None:
        """Wait for a change to be deployed to all authoritative servers.

        :raises .errors.PropagationTimeout: once ``propagation_timeout``
            seconds have passed without the change being deployed

        """
        deadline = time.monotonic() + self.propagation_timeout
        while True:
            status = self.publisher.change_status(change_id)
            if status == "deployed":
                self.logger.debug("Change %s deployed", change_id)
                return
            if time.monotonic() + self.poll_interval > deadline:
                raise errors.PropagationTimeout(
                    f"Timed out after {self.propagation_timeout} seconds waiting "
                    f"for DNS change {change_id}. Current status: {status}")
            time.sleep(self.poll_interval)

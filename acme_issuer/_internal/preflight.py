"""Check that every requested domain resolves before contacting the CA."""
import asyncio
import logging
from typing import Any
from typing import List
from typing import Optional
from typing import Sequence

import dns.asyncresolver
import dns.exception

from acme_issuer import errors

logger = logging.getLogger(__name__)


class DnsPreflightChecker:
    """Resolve all domains concurrently and report every failure at once.

    Lookups go to the DNS servers configured in ``/etc/resolv.conf``; the
    local hosts file is never consulted, so a domain only passes if it is
    publicly resolvable.

    :ivar resolver: ``dns.asyncresolver.Resolver`` compatible object.
    :ivar float lifetime: Seconds allowed for each lookup.

    """
    def __init__(self, resolver: Optional[Any] = None, lifetime: float = 10,
                 log: Optional[logging.Logger] = None) -> None:
        self.resolver = resolver
        self.lifetime = lifetime
        self.logger = log if log is not None else logger

    def check(self, domains: Sequence[str]) -> None:
        """Resolve an A record for each of ``domains``.

        :raises .errors.DnsResolutionError: naming every domain that failed,
            in the order the failures were observed

        """
        failed = asyncio.run(self._check_all(domains))
        if failed:
            raise errors.DnsResolutionError(failed)
        self.logger.info("Checked DNS records, all fine.")

    async def _check_all(self, domains: Sequence[str]) -> List[str]:
        resolver = self.resolver
        if resolver is None:
            try:
                resolver = dns.asyncresolver.Resolver()
            except dns.exception.DNSException as error:
                self.logger.debug("Unable to configure the resolver: %s", error)
                return list(domains)
        failed: List[str] = []
        await asyncio.gather(*(self._resolve(resolver, domain, failed)
                               for domain in domains))
        return failed

    async def _resolve(self, resolver: Any, domain: str, failed: List[str]) -> None:
        try:
            answer = await resolver.resolve(domain, "A", lifetime=self.lifetime)
        except dns.exception.DNSException as error:
            self.logger.debug("Error resolving %s: %s", domain, error)
            failed.append(domain)
        else:
            self.logger.debug("%s resolves to %s", domain,
                              ", ".join(rdata.to_text() for rdata in answer))

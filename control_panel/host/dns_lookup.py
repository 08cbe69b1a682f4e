# control_panel/host/dns_lookup.py
"""TXT record lookup used for domain ownership verification."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)


class TxtResolver(ABC):
    @abstractmethod
    def resolve_txt(self, name: str) -> List[str]:
        """Return every TXT value published at name (chunks joined), [] when none."""


class DnsTxtResolver(TxtResolver):
    """dnspython-backed resolver; any DNS failure counts as "no records"."""

    def __init__(self, nameservers: Optional[List[str]] = None, lifetime: float = 5.0):
        self._nameservers = nameservers
        self._lifetime = lifetime

    def resolve_txt(self, name: str) -> List[str]:
        resolver = dns.resolver.Resolver()
        if self._nameservers:
            resolver.nameservers = self._nameservers
        resolver.lifetime = self._lifetime

        try:
            answer = resolver.resolve(name, "TXT")
        except dns.exception.DNSException as e:
            logger.info(f"[dns] TXT lookup for {name} returned nothing: {e.__class__.__name__}")
            return []

        return [
            b"".join(rdata.strings).decode("utf-8", errors="replace")
            for rdata in answer
        ]

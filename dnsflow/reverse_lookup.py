"""Executable that remembers which domain each answered address came from."""

from __future__ import annotations

import ipaddress
import threading
import time
from dataclasses import dataclass

import dns.rdatatype

from dnsflow.chain import ChainNode, QueryContext, exec_chain_node

DEFAULT_TTL = 10
CLEAN_INTERVAL = 5.0


def _to_address(ip) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return ip
    return ipaddress.ip_address(str(ip))


@dataclass(frozen=True)
class _Entry:
    expire: float
    domain: str


class ReverseStore:
    """Address to domain map; expired entries are removed by a periodic cleaner."""

    def __init__(self, clean_interval: float = CLEAN_INTERVAL):
        self._entries: dict = {}
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._interval = clean_interval
        self._thread = threading.Thread(target=self._clean_loop, daemon=True)
        self._thread.start()

    def _clean_loop(self) -> None:
        while not self._closed.wait(self._interval):
            self.clean()

    def save(self, domain: str, ttl: float, *args) -> None:
        """Map every address in args to domain for ttl seconds."""
        if not args:
            return
        entry = _Entry(time.time() + ttl, domain)
        with self._lock:
            for addr in args:
                self._entries[_to_address(addr)] = entry

    def lookup(self, ip) -> str:
        """The domain saved for ip, or an empty string."""
        with self._lock:
            entry = self._entries.get(_to_address(ip))
        return entry.domain if entry is not None else ""

    def clean(self) -> None:
        now = time.time()
        with self._lock:
            expired = [addr for addr, e in self._entries.items() if e.expire < now]
            for addr in expired:
                del self._entries[addr]

    def close(self) -> None:
        self._closed.set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ReverseLookup:
    """Record A/AAAA answers so addresses can be looked up back to their domain.

    Answer TTLs are capped at ttl seconds (default 10), the time an entry is kept.
    """

    def __init__(self, ttl: int = 0):
        self.ttl = ttl if ttl > 0 else DEFAULT_TTL
        self.store = ReverseStore()

    def lookup(self, ip) -> str:
        """The domain recorded for ip; raises ValueError if ip is not an address."""
        if isinstance(ip, str):
            try:
                ip = ipaddress.ip_address(ip)
            except ValueError as e:
                raise ValueError(str(e)) from None
        return self.store.lookup(ip)

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        await exec_chain_node(qctx, next_node)
        r = qctx.r
        if r is None:
            return
        for rrset in r.answer:
            if rrset.rdtype not in (dns.rdatatype.A, dns.rdatatype.AAAA):
                continue
            if rrset.ttl > self.ttl:
                rrset.ttl = self.ttl
            addresses = [ipaddress.ip_address(rd.address) for rd in rrset]
            self.store.save(rrset.name.to_text(), self.ttl, *addresses)

    def close(self) -> None:
        self.store.close()
"""Upstream that queries over UDP and ignores replies without EDNS0.

Forged answers injected on the path rarely carry an OPT record, so waiting for a
reply that has one filters most of them out.
"""

from __future__ import annotations

import asyncio
import copy
import socket
import time

import dns.message

from dnsflow.dnsmsg import remove_edns0

DEFAULT_TIMEOUT = 3.0
_DEFAULT_PORT = "53"
_QUERY_PAYLOAD = 512
_MIN_UDP_SIZE = 512


def _split_host_port(addr: str) -> tuple[str, str] | None:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or not addr[end + 1:].startswith(":"):
            return None
        return addr[1:end], addr[end + 2:]
    host, sep, port = addr.rpartition(":")
    if not sep or ":" in host:
        return None
    return host, port


def _with_default_port(addr: str, port: str) -> str:
    if _split_host_port(addr) is not None:
        return addr
    if ":" in addr:
        return f"[{addr}]:{port}"
    return f"{addr}:{port}"


class UDPMEUpstream:
    """A UDP upstream that only accepts EDNS0 replies."""

    def __init__(self, addr: str, trusted: bool = False):
        self.address = _with_default_port(addr, _DEFAULT_PORT)
        self.trusted = trusted

    async def exchange(self, q: dns.message.Message, timeout: float | None = None) -> dns.message.Message:
        """Send q and return the first reply that carries EDNS0.

        A query without EDNS0 is sent with a 512-octet EDNS0 record, which is
        stripped from the reply again. Raises TimeoutError when time runs out.
        """
        deadline = time.monotonic() + (DEFAULT_TIMEOUT if timeout is None else timeout)
        if q.edns >= 0:
            return await asyncio.to_thread(self._exchange_optm, q, deadline)
        mc = copy.deepcopy(q)
        mc.use_edns(0, payload=_QUERY_PAYLOAD)
        r = await asyncio.to_thread(self._exchange_optm, mc, deadline)
        remove_edns0(r)
        return r

    def _exchange_optm(self, m: dns.message.Message, deadline: float) -> dns.message.Message:
        host, port = _split_host_port(self.address)
        family, kind, proto, _, sockaddr = socket.getaddrinfo(host, int(port), type=socket.SOCK_DGRAM)[0]
        bufsize = max(m.payload, _MIN_UDP_SIZE) if m.edns >= 0 else _MIN_UDP_SIZE
        with socket.socket(family, kind, proto) as sock:
            sock.connect(sockaddr)
            sock.settimeout(max(deadline - time.monotonic(), 0.001))
            sock.send(m.to_wire())
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(f"no EDNS0 reply from {self.address}")
                sock.settimeout(remaining)
                data = sock.recv(bufsize)
                r = dns.message.from_wire(data)
                if r.edns < 0:
                    continue
                return r
"""Executable that blocks queries with a fixed address, an empty reply or a drop."""

from __future__ import annotations

import ipaddress

import dns.flags
import dns.message
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from dnsflow.chain import ChainNode, ContextStatus, QueryContext, exec_chain_node
from dnsflow.dnsmsg import gen_empty_reply, make_reply

_ANSWER_TTL = 3600

# Named presets: keyword arguments for BlackHole.
_PRESETS = {
    "_drop_response": {"rcode": -1},
    "_new_empty_response": {"rcode": dns.rcode.NOERROR},
    "_new_servfail_response": {"rcode": dns.rcode.SERVFAIL},
    "_new_nxdomain_response": {"rcode": dns.rcode.NXDOMAIN},
}


def _parse_ip(s: str, kind: str):
    try:
        return ipaddress.ip_address(s)
    except ValueError:
        raise ValueError(f"{s} is an invalid {kind} addr") from None


class BlackHole:
    """Answer A/AAAA with a fixed address, or reply with rcode, or drop if rcode < 0."""

    def __init__(self, ipv4: str = "", ipv6: str = "", rcode: int = 0):
        self.rcode = rcode
        self._ipv4: ipaddress.IPv4Address | None = None
        self._ipv6: ipaddress.IPv6Address | None = None
        if ipv4:
            ip = _parse_ip(ipv4, "ipv4")
            if isinstance(ip, ipaddress.IPv6Address):
                if ip.ipv4_mapped is None:
                    raise ValueError(f"{ipv4} is an invalid ipv4 addr")
                ip = ip.ipv4_mapped
            self._ipv4 = ip
        if ipv6:
            ip = _parse_ip(ipv6, "ipv6")
            if isinstance(ip, ipaddress.IPv4Address):
                ip = ipaddress.IPv6Address(f"::ffff:{ip}")
            self._ipv6 = ip

    def _address_reply(self, q: dns.message.Message, rdtype, address) -> dns.message.Message:
        r = make_reply(q)
        r.set_rcode(dns.rcode.NOERROR)
        r.flags |= dns.flags.RA
        name = q.question[0].name
        r.answer.append(
            dns.rrset.from_text(name, _ANSWER_TTL, dns.rdataclass.IN, rdtype, str(address))
        )
        return r

    def _apply(self, qctx: QueryContext) -> None:
        q = qctx.q
        if len(q.question) != 1:
            return
        qtype = q.question[0].rdtype
        if self._ipv4 is not None and qtype == dns.rdatatype.A:
            qctx.set_response(self._address_reply(q, dns.rdatatype.A, self._ipv4), ContextStatus.REJECTED)
        elif self._ipv6 is not None and qtype == dns.rdatatype.AAAA:
            qctx.set_response(self._address_reply(q, dns.rdatatype.AAAA, self._ipv6), ContextStatus.REJECTED)
        elif self.rcode >= 0:
            qctx.set_response(gen_empty_reply(q, self.rcode), ContextStatus.REJECTED)
        else:
            qctx.set_response(None, ContextStatus.DROPPED)

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        self._apply(qctx)
        await exec_chain_node(qctx, next_node)
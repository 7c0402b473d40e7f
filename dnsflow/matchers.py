"""Matchers on queries and on responses."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable, Iterable

import dns.name
import dns.rdatatype

from dnsflow.chain import QueryContext
from dnsflow.dnsmsg import get_msg_ecs

_Check = Callable[[QueryContext], bool]


def _norm_name(name) -> str:
    if isinstance(name, dns.name.Name):
        name = name.to_text()
    return str(name).strip().lower().rstrip(".")


def _as_plain(ip):
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


class _DomainSet:
    """Domain rules: "full:", "domain:" (default), "keyword:" and "regexp:"."""

    def __init__(self, rules: Iterable[str]):
        self._full: set[str] = set()
        self._domain: set[str] = set()
        self._keywords: list[str] = []
        self._regexps: list[re.Pattern] = []
        for rule in rules:
            self._add(rule)

    def _add(self, rule: str) -> None:
        rule = rule.strip()
        kind, sep, value = rule.partition(":")
        if not sep:
            kind, value = "domain", rule
        if kind == "full":
            self._full.add(_norm_name(value))
        elif kind == "domain":
            self._domain.add(_norm_name(value))
        elif kind == "keyword":
            self._keywords.append(value.lower())
        elif kind == "regexp":
            try:
                self._regexps.append(re.compile(value))
            except re.error as e:
                raise ValueError(f"invalid regexp {value}: {e}") from None
        else:
            raise ValueError(f"unsupported match type {kind}")

    def __len__(self) -> int:
        return len(self._full) + len(self._domain) + len(self._keywords) + len(self._regexps)

    def match(self, name) -> bool:
        n = _norm_name(name)
        if n in self._full:
            return True
        candidate = n
        while candidate:
            if candidate in self._domain:
                return True
            _, _, candidate = candidate.partition(".")
        if any(k in n for k in self._keywords):
            return True
        fqdn = n + "."
        return any(p.search(fqdn) for p in self._regexps)


class _IPSet:
    """A list of networks; bare addresses are single-host networks."""

    def __init__(self, entries: Iterable[str]):
        self._nets = []
        for s in entries:
            try:
                self._nets.append(ipaddress.ip_network(s.strip(), strict=False))
            except ValueError:
                raise ValueError(f"invalid ip or cidr {s}") from None

    def __len__(self) -> int:
        return len(self._nets)

    def match(self, ip) -> bool:
        if ip is None:
            return False
        addr = _as_plain(ipaddress.ip_address(str(ip)))
        return any(addr in net for net in self._nets)


async def _all_match(checks: list[_Check], qctx: QueryContext) -> bool:
    if not checks:
        return False
    return all(check(qctx) for check in checks)


class QueryMatcher:
    """Matches a query when every configured condition holds; no condition never matches."""

    def __init__(
        self,
        client_ip: Iterable[str] = (),
        ecs: Iterable[str] = (),
        domain: Iterable[str] = (),
        qtype: Iterable[int] = (),
        qclass: Iterable[int] = (),
    ):
        self._checks: list[_Check] = []
        client_ip, ecs, domain = list(client_ip), list(ecs), list(domain)
        qtype, qclass = set(qtype), set(qclass)

        if client_ip:
            ips = _IPSet(client_ip)
            self._checks.append(lambda c: ips.match(c.meta.client_ip))
        if ecs:
            ecs_ips = _IPSet(ecs)

            def ecs_check(c: QueryContext) -> bool:
                opt = get_msg_ecs(c.q)
                return opt is not None and ecs_ips.match(opt.address)

            self._checks.append(ecs_check)
        if domain:
            names = _DomainSet(domain)
            self._checks.append(lambda c: any(names.match(q.name) for q in c.q.question))
        if qtype:
            self._checks.append(lambda c: any(q.rdtype in qtype for q in c.q.question))
        if qclass:
            self._checks.append(lambda c: any(q.rdclass in qclass for q in c.q.question))

    async def match(self, qctx: QueryContext) -> bool:
        return await _all_match(self._checks, qctx)


class QueryIsEDNS0:
    """Matches queries that carry an EDNS0 record."""

    async def match(self, qctx: QueryContext) -> bool:
        return qctx.q.edns >= 0


class ResponseMatcher:
    """Matches a response by rcode, CNAME targets and answer addresses; all must hold."""

    def __init__(
        self,
        rcode: Iterable[int] = (),
        ip: Iterable[str] = (),
        cname: Iterable[str] = (),
    ):
        self._checks: list[_Check] = []
        rcodes, ip, cname = set(rcode), list(ip), list(cname)

        if rcodes:
            self._checks.append(lambda c: c.r is not None and int(c.r.rcode()) in rcodes)
        if cname:
            names = _DomainSet(cname)

            def cname_check(c: QueryContext) -> bool:
                if c.r is None:
                    return False
                return any(
                    names.match(rd.target)
                    for rrset in c.r.answer
                    if rrset.rdtype == dns.rdatatype.CNAME
                    for rd in rrset
                )

            self._checks.append(cname_check)
        if ip:
            ips = _IPSet(ip)

            def ip_check(c: QueryContext) -> bool:
                if c.r is None:
                    return False
                return any(
                    ips.match(rd.address)
                    for rrset in c.r.answer
                    if rrset.rdtype in (dns.rdatatype.A, dns.rdatatype.AAAA)
                    for rd in rrset
                )

            self._checks.append(ip_check)

    async def match(self, qctx: QueryContext) -> bool:
        return await _all_match(self._checks, qctx)


class HasValidAnswer:
    """Matches responses with an answer record for one of the query's questions."""

    async def match(self, qctx: QueryContext) -> bool:
        r = qctx.r
        if r is None:
            return False
        wanted = {(q.name, q.rdtype, q.rdclass) for q in qctx.q.question}
        return any(
            (rrset.name, rrset.rdtype, rrset.rdclass) in wanted and len(rrset) > 0
            for rrset in r.answer
        )


# Named presets: the class and its keyword arguments.
_PRESETS = {
    "_qtype_A_AAAA": (QueryMatcher, {"qtype": [int(dns.rdatatype.A), int(dns.rdatatype.AAAA)]}),
    "_qtype_AAAA": (QueryMatcher, {"qtype": [int(dns.rdatatype.AAAA)]}),
    "_query_edns0": (QueryIsEDNS0, {}),
    "_response_valid_answer": (HasValidAnswer, {}),
}
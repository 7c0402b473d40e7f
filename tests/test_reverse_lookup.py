import ipaddress

import dns.message
import dns.rdatatype
import dns.rrset
import pytest

from dnsflow.chain import ContextStatus, QueryContext, wrap_executable
from dnsflow.dnsmsg import make_reply
from dnsflow.reverse_lookup import ReverseLookup, ReverseStore


class _Responder:
    def __init__(self, records):
        self.records = records

    async def exec(self, qctx, next_node):
        r = make_reply(qctx.q)
        for name, ttl, rdtype, value in self.records:
            r.answer.append(dns.rrset.from_text(name, ttl, "IN", rdtype, value))
        qctx.set_response(r, ContextStatus.RESPONDED)


def test_store_save_and_lookup():
    s = ReverseStore()
    try:
        s.save("example.com.", 60, ipaddress.ip_address("192.0.2.1"))
        assert s.lookup("192.0.2.1") == "example.com."
        assert s.lookup("192.0.2.2") == ""
    finally:
        s.close()


def test_store_save_without_addresses_is_noop():
    s = ReverseStore()
    try:
        s.save("example.com.", 60)
        assert len(s) == 0
    finally:
        s.close()


def test_store_clean_removes_expired_only():
    s = ReverseStore()
    try:
        s.save("old.example.com.", -1, "192.0.2.1")
        s.save("new.example.com.", 60, "192.0.2.2")
        s.clean()
        assert s.lookup("192.0.2.1") == ""
        assert s.lookup("192.0.2.2") == "new.example.com."
    finally:
        s.close()


@pytest.mark.asyncio
async def test_exec_records_and_caps_ttl():
    p = ReverseLookup()
    try:
        q = dns.message.make_query("example.com.", "A")
        qctx = QueryContext(q)
        nxt = wrap_executable(_Responder([("example.com.", 300, "A", "192.0.2.1")]))
        await p.exec(qctx, nxt)
        assert p.lookup("192.0.2.1") == "example.com."
        assert qctx.r.answer[0].ttl == 10
    finally:
        p.close()


@pytest.mark.asyncio
async def test_exec_keeps_lower_ttl_and_handles_aaaa():
    p = ReverseLookup(ttl=50)
    try:
        q = dns.message.make_query("v6.example.com.", "AAAA")
        qctx = QueryContext(q)
        nxt = wrap_executable(_Responder([("v6.example.com.", 3, "AAAA", "2001:db8::1")]))
        await p.exec(qctx, nxt)
        assert p.lookup("2001:db8::1") == "v6.example.com."
        assert qctx.r.answer[0].ttl == 3
    finally:
        p.close()


@pytest.mark.asyncio
async def test_exec_ignores_other_types():
    p = ReverseLookup()
    try:
        q = dns.message.make_query("example.com.", "TXT")
        qctx = QueryContext(q)
        nxt = wrap_executable(_Responder([("example.com.", 300, "TXT", '"hello"')]))
        await p.exec(qctx, nxt)
        assert len(p.store) == 0
        assert qctx.r.answer[0].ttl == 300
    finally:
        p.close()


@pytest.mark.asyncio
async def test_exec_without_response():
    p = ReverseLookup()
    try:
        qctx = QueryContext(dns.message.make_query("example.com.", "A"))
        await p.exec(qctx, None)
        assert qctx.r is None
        assert len(p.store) == 0
    finally:
        p.close()


def test_lookup_invalid_ip_raises():
    p = ReverseLookup()
    try:
        with pytest.raises(ValueError):
            p.lookup("not-an-ip")
    finally:
        p.close()
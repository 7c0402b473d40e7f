"""Helpers for editing DNS messages: replies, EDNS0, TTLs, padding and ECS."""

from __future__ import annotations

import copy
import ipaddress

import dns.edns
import dns.flags
import dns.message
import dns.rcode
import dns.rrset

_DEFAULT_UDP_SIZE = 1232


def make_reply(q: dns.message.Message) -> dns.message.Message:
    """A bare reply to q: same id, opcode, RD/CD flags and question."""
    r = dns.message.Message(id=q.id)
    r.flags = dns.flags.QR | (q.flags & (dns.flags.RD | dns.flags.CD))
    r.set_opcode(q.opcode())
    r.question = [copy.deepcopy(rrset) for rrset in q.question]
    return r


def gen_empty_reply(q: dns.message.Message, rcode: int) -> dns.message.Message:
    r = make_reply(q)
    r.set_rcode(rcode)
    r.flags |= dns.flags.RA
    return r


def _set_options(m: dns.message.Message, options) -> None:
    m.use_edns(m.edns, m.ednsflags, m.payload, options=list(options))


def upgrade_edns0(m: dns.message.Message) -> dns.message.Message:
    """Make m an EDNS0 message if it is not one already."""
    if m.edns < 0:
        m.use_edns(0, payload=_DEFAULT_UDP_SIZE)
    return m


def remove_edns0(m: dns.message.Message) -> None:
    m.use_edns(None)


def get_edns0_option(m: dns.message.Message, code: int):
    return next((o for o in m.options if o.otype == code), None)


def remove_edns0_option(m: dns.message.Message, code: int) -> None:
    if m.edns >= 0:
        _set_options(m, [o for o in m.options if o.otype != code])


def _records(m: dns.message.Message):
    yield from m.answer
    yield from m.authority
    yield from m.additional


def get_minimal_ttl(m: dns.message.Message) -> int:
    """The smallest TTL of all records, or 0 if there are none."""
    return min((rrset.ttl for rrset in _records(m)), default=0)


def set_ttl(m: dns.message.Message, ttl: int) -> None:
    for rrset in _records(m):
        rrset.ttl = ttl


def subtract_ttl(m: dns.message.Message, delta: int) -> None:
    """Lower every TTL by delta, keeping it at least 1."""
    for rrset in _records(m):
        rrset.ttl = rrset.ttl - delta if rrset.ttl > delta else 1


def apply_maximum_ttl(m: dns.message.Message, ttl: int) -> None:
    for rrset in _records(m):
        rrset.ttl = min(rrset.ttl, ttl)


def apply_minimal_ttl(m: dns.message.Message, ttl: int) -> None:
    for rrset in _records(m):
        rrset.ttl = max(rrset.ttl, ttl)


def pad_to_minimum(m: dns.message.Message, size: int) -> bool:
    """Pad an EDNS0 message so its wire form is at least size octets.

    Returns True if a padding option was added.
    """
    if m.edns < 0:
        return False
    m.pad = 0
    remove_edns0_option(m, dns.edns.OptionType.PADDING)
    need = size - len(m.to_wire()) - 4
    if need < 0:
        return False
    _set_options(m, [*m.options, dns.edns.GenericOption(dns.edns.OptionType.PADDING, b"\x00" * need)])
    return True


def new_edns0_subnet(ip, mask: int) -> dns.edns.ECSOption:
    return dns.edns.ECSOption(str(ipaddress.ip_address(str(ip))), mask)


def get_msg_ecs(m: dns.message.Message | None):
    if m is None or m.edns < 0:
        return None
    return get_edns0_option(m, dns.edns.OptionType.ECS)


def add_ecs(m: dns.message.Message, ecs: dns.edns.ECSOption, overwrite: bool) -> bool:
    """Add ecs to the EDNS0 message m.

    Returns True only if m had no client subnet option before.
    """
    if m.edns < 0:
        raise ValueError("message is not an EDNS0 message")
    existing = get_msg_ecs(m)
    if existing is None:
        _set_options(m, [*m.options, ecs])
        return True
    if overwrite:
        _set_options(m, [ecs if o is existing else o for o in m.options])
    return False


def remove_msg_ecs(m: dns.message.Message) -> None:
    remove_edns0_option(m, dns.edns.OptionType.ECS)
"""Executable that refuses odd queries and tidies up responses."""

from __future__ import annotations

import random

import dns.edns
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from dnsflow.chain import ChainNode, ContextStatus, QueryContext, exec_chain_node
from dnsflow.dnsmsg import make_reply, remove_edns0, remove_edns0_option

# Named preset: keyword arguments for MiscOptimizer.
_PRESETS = {"_misc_optm": {}}


class MiscOptimizer:
    """Refuse queries that are not a single IN question; trim, shuffle and clean responses."""

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        q = qctx.q
        if len(q.question) != 1 or q.question[0].rdclass != dns.rdataclass.IN:
            r = make_reply(q)
            r.set_rcode(dns.rcode.REFUSED)
            qctx.set_response(r, ContextStatus.REJECTED)
            return

        await exec_chain_node(qctx, next_node)

        r = qctx.r
        if r is None:
            return

        question = q.question[0]
        qt = question.rdtype
        if qt in (dns.rdatatype.A, dns.rdatatype.AAAA):
            kept = []
            for rrset in r.answer:
                if rrset.rdtype != qt:
                    continue
                rdatas = list(rrset)
                if not rdatas:
                    continue
                random.shuffle(rdatas)
                kept.append(dns.rrset.from_rdata_list(question.name, rrset.ttl, rdatas))
            random.shuffle(kept)
            r.answer = kept

        if r.edns >= 0:
            remove_edns0_option(r, dns.edns.OptionType.PADDING)

        if q.edns < 0:
            remove_edns0(r)
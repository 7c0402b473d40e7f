"""Executable that drops the non-preferred address family when the preferred one exists."""

from __future__ import annotations

import asyncio
import enum
import logging

import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset

from dnsflow.chain import ChainNode, ContextStatus, QueryContext, exec_chain_node
from dnsflow.dnsmsg import gen_empty_reply

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT = 0.25
DEFAULT_SUB_ROUTINE_TIMEOUT = 5.0


class Mode(enum.IntEnum):
    PREFER_IPV4 = 0
    PREFER_IPV6 = 1


# Named presets: keyword arguments for DualSelector.
_PRESETS = {
    "_prefer_ipv4": {"mode": Mode.PREFER_IPV4},
    "_prefer_ipv6": {"mode": Mode.PREFER_IPV6},
}


def msg_answer_has_rr(m: dns.message.Message | None, rdtype) -> bool:
    """True if m has at least one answer record of type rdtype."""
    if m is None:
        return False
    return any(rrset.rdtype == rdtype and len(rrset) > 0 for rrset in m.answer)


def _adopt(dst: QueryContext, src: QueryContext) -> None:
    dst.q = src.q
    dst.original_query = src.original_query
    dst.meta = src.meta
    dst.marks = src.marks
    dst.set_response(src.r, src.status)


class DualSelector:
    """Answer the non-preferred A/AAAA query empty if the preferred type has records.

    Both queries run in parallel. After the original query finishes, the reference
    query is awaited for at most wait_timeout_ms milliseconds (default 250).
    """

    def __init__(self, mode: int = Mode.PREFER_IPV4, wait_timeout_ms: int = 0):
        self.mode = mode
        self.wait_timeout = wait_timeout_ms / 1000 if wait_timeout_ms > 0 else DEFAULT_WAIT_TIMEOUT
        self._background: set[asyncio.Task] = set()

    async def _reference(self, ref_ctx: QueryContext, next_node, ref_qtype) -> bool:
        """Run the reference query; True means the original query should be blocked."""
        try:
            await asyncio.wait_for(exec_chain_node(ref_ctx, next_node), DEFAULT_SUB_ROUTINE_TIMEOUT)
        except Exception as e:  # noqa: BLE001 - reference failures only let the query pass
            logger.warning("reference query routine err: %s", e)
            return False
        return msg_answer_has_rr(ref_ctx.r, ref_qtype)

    @staticmethod
    def _block(qctx: QueryContext) -> None:
        qctx.set_response(gen_empty_reply(qctx.q, dns.rcode.NOERROR), ContextStatus.RESPONDED)

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        q = qctx.q
        if len(q.question) != 1:
            await exec_chain_node(qctx, next_node)
            return

        qtype = q.question[0].rdtype
        if (
            (qtype == dns.rdatatype.A and self.mode == Mode.PREFER_IPV4)
            or (qtype == dns.rdatatype.AAAA and self.mode == Mode.PREFER_IPV6)
            or qtype not in (dns.rdatatype.A, dns.rdatatype.AAAA)
        ):
            await exec_chain_node(qctx, next_node)
            return

        ref_qtype = dns.rdatatype.AAAA if qtype == dns.rdatatype.A else dns.rdatatype.A
        ref_ctx = qctx.copy()
        old = ref_ctx.q.question[0]
        ref_ctx.q.question[0] = dns.rrset.RRset(old.name, old.rdclass, ref_qtype)

        sub_ctx = qctx.copy()
        ref_task = asyncio.create_task(self._reference(ref_ctx, next_node, ref_qtype))
        sub_task = asyncio.create_task(
            asyncio.wait_for(exec_chain_node(sub_ctx, next_node), DEFAULT_SUB_ROUTINE_TIMEOUT)
        )
        try:
            while True:
                if ref_task.done() and ref_task.result():
                    self._block(qctx)
                    return
                if sub_task.done():
                    break
                pending = {t for t in (ref_task, sub_task) if not t.done()}
                await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            if not ref_task.done():
                await asyncio.wait({ref_task}, timeout=self.wait_timeout)
            if ref_task.done() and ref_task.result():
                self._block(qctx)
                return

            _adopt(qctx, sub_ctx)
            exc = sub_task.exception()
            if exc is not None:
                raise exc
        finally:
            if not sub_task.done():
                sub_task.cancel()
            if not ref_task.done():
                self._background.add(ref_task)
                ref_task.add_done_callback(self._background.discard)
import dns.message
import pytest

from dnsflow.chain import (
    ChainNode,
    ContextStatus,
    QueryContext,
    allocate_mark,
    exec_chain_node,
    wrap_executable,
)
from dnsflow.dnsmsg import make_reply


class Recorder:
    def __init__(self, name, log, stop=False):
        self.name, self.log, self.stop = name, log, stop

    async def exec(self, qctx, next_node):
        self.log.append(self.name)
        if not self.stop:
            await exec_chain_node(qctx, next_node)


def _ctx():
    return QueryContext(dns.message.make_query("example.com.", "A"))


@pytest.mark.asyncio
async def test_chain_runs_in_order_and_stops():
    log = []
    chain = ChainNode(Recorder("a", log), ChainNode(Recorder("b", log, stop=True), wrap_executable(Recorder("c", log))))
    await exec_chain_node(_ctx(), chain)
    assert log == ["a", "b"]


@pytest.mark.asyncio
async def test_none_node_is_noop():
    ctx = _ctx()
    await exec_chain_node(ctx, None)
    assert ctx.status is ContextStatus.WAITING and ctx.r is None


def test_set_response_and_copy_independent():
    ctx = _ctx()
    r = make_reply(ctx.q)
    ctx.set_response(r, ContextStatus.RESPONDED)
    c = ctx.copy()
    assert c.status is ContextStatus.RESPONDED
    c.q.id = (ctx.q.id + 1) % 65536
    assert c.q.id != ctx.q.id
    assert c.r.id == r.id and c.r is not r


def test_original_query_unchanged():
    ctx = _ctx()
    ctx.q.id = (ctx.original_query.id + 1) % 65536
    assert ctx.original_query.id != ctx.q.id


def test_marks():
    a, b = allocate_mark(), allocate_mark()
    assert a != b
    ctx = _ctx()
    ctx.add_mark(a)
    assert ctx.has_mark(a) and not ctx.has_mark(b)
    assert ctx.copy().has_mark(a)
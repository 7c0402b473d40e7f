"""Executable that caps the EDNS0 UDP payload size of queries."""

from __future__ import annotations

from dnsflow.chain import ChainNode, QueryContext, exec_chain_node

_MIN_SIZE = 512
_MAX_SIZE = 4096


class BufSize:
    """Lower a query's EDNS0 UDP size to at most size, kept within 512..4096."""

    def __init__(self, size: int = 0):
        self.size = size

    @property
    def max_size(self) -> int:
        return min(max(self.size, _MIN_SIZE), _MAX_SIZE)

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        q = qctx.q
        if q.edns >= 0:
            limit = self.max_size
            if q.payload > limit:
                q.use_edns(q.edns, q.ednsflags, limit, options=list(q.options))
        await exec_chain_node(qctx, next_node)
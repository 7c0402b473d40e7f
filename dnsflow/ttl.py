"""Executable that clamps the TTLs of responses."""

from __future__ import annotations

from dnsflow.chain import ChainNode, QueryContext, exec_chain_node
from dnsflow.dnsmsg import apply_maximum_ttl, apply_minimal_ttl


class TTL:
    """Clamp response TTLs into [minimal_ttl, maximum_ttl]; zero disables a bound."""

    def __init__(self, maximum_ttl: int = 0, minimal_ttl: int = 0):
        self.maximum_ttl = maximum_ttl
        self.minimal_ttl = minimal_ttl

    async def exec(self, qctx: QueryContext, next_node: ChainNode | None) -> None:
        r = qctx.r
        if r is not None:
            if self.maximum_ttl > 0:
                apply_maximum_ttl(r, self.maximum_ttl)
            if self.minimal_ttl > 0:
                apply_minimal_ttl(r, self.minimal_ttl)
        await exec_chain_node(qctx, next_node)
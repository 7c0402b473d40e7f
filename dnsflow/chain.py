"""Query context and the chain of executables that process it."""

from __future__ import annotations

import copy
import enum
import ipaddress
import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

import dns.message


class ContextStatus(enum.Enum):
    WAITING = "waiting"
    RESPONDED = "responded"
    SERVER_FAILED = "server_failed"
    DROPPED = "dropped"
    REJECTED = "rejected"


@dataclass
class RequestMeta:
    client_ip: ipaddress.IPv4Address | ipaddress.IPv6Address | None = None


class Executable(Protocol):
    async def exec(self, qctx: "QueryContext", next_node: "ChainNode | None") -> None: ...


class QueryContext:
    """A query, its original form, its response and per-query marks."""

    def __init__(self, q: dns.message.Message, meta: RequestMeta | None = None):
        self.q = q
        self.original_query = copy.deepcopy(q)
        self.meta = meta or RequestMeta()
        self.r: dns.message.Message | None = None
        self.status = ContextStatus.WAITING
        self.marks: set[int] = set()

    def set_response(self, r, status: ContextStatus) -> None:
        self.r = r
        self.status = status

    def copy(self) -> "QueryContext":
        c = QueryContext.__new__(QueryContext)
        c.q = copy.deepcopy(self.q)
        c.original_query = copy.deepcopy(self.original_query)
        c.meta = copy.copy(self.meta)
        c.r = copy.deepcopy(self.r)
        c.status = self.status
        c.marks = set(self.marks)
        return c

    def add_mark(self, mark: int) -> None:
        self.marks.add(mark)

    def has_mark(self, mark: int) -> bool:
        return mark in self.marks


@dataclass
class ChainNode:
    executable: Any
    next: "ChainNode | None" = field(default=None)


_mark_counter = itertools.count(1)
_mark_lock = threading.Lock()


def allocate_mark() -> int:
    """A new mark id, unique within this process."""
    with _mark_lock:
        return next(_mark_counter)


def wrap_executable(executable) -> ChainNode:
    return ChainNode(executable)


async def exec_chain_node(qctx: QueryContext, node: ChainNode | None) -> None:
    """Run node with qctx, handing it the rest of the chain; no-op if node is None."""
    if node is None:
        return
    await node.executable.exec(qctx, node.next)
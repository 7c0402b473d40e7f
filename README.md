# dnsflow

dnsflow is a library for building DNS query pipelines. A query passes
through a chain of small plugins. Each plugin may inspect or rewrite the
query, answer it, or hand it to the next node. On the way back it may
adjust the response.

The library works on `dnspython` messages. What goes into the pipeline
and what comes out is always a plain `dns.message.Message`. Plugins are
asynchronous and run under `asyncio`.

## Installation

```
pip install dnsflow
```

To run the test suite as well:

```
pip install "dnsflow[test]"
pytest
```

## The pipeline core: `dnsflow.chain`

- `QueryContext(q, meta=None)` holds the following:
  - the query `q`
  - a copy of it as `original_query`
  - the response `r`
  - a `ContextStatus` (`WAITING`, `RESPONDED`, `SERVER_FAILED`,
    `DROPPED` or `REJECTED`)
  - a `RequestMeta` with the client's `client_ip`
- Plugins answer with `set_response(r, status)`.
- `copy()` returns an independent deep copy of the context.
- `add_mark(mark)` and `has_mark(mark)` tag a query. `allocate_mark()`
  hands out ids that are unique within the process.
- `ChainNode(executable, next=None)` links plugins. `wrap_executable(x)`
  builds a single node. `await exec_chain_node(qctx, node)` runs a node
  and passes it the rest of the chain. If `node` is `None`, it does
  nothing.

## Plugins

Each plugin has `async exec(qctx, next_node)`.

| Module | Class | What it does |
| --- | --- | --- |
| `dnsflow.blackhole` | `BlackHole(ipv4="", ipv6="", rcode=0)` | See below |
| `dnsflow.bufsize` | `BufSize(size=0)` | Lowers a query's EDNS0 UDP size to at most `size`. The limit is kept within 512 to 4096 |
| `dnsflow.ttl` | `TTL(maximum_ttl=0, minimal_ttl=0)` | Clamps the TTLs of the response. A bound of 0 is not applied |
| `dnsflow.misc_optm` | `MiscOptimizer()` | See below |
| `dnsflow.dual_selector` | `DualSelector(mode=Mode.PREFER_IPV4, wait_timeout_ms=0)` | See below |
| `dnsflow.reverse_lookup` | `ReverseLookup(ttl=0)` | See below |

### BlackHole

- A/AAAA queries get an answer with the fixed address and a TTL of 3600.
- Otherwise the response is an empty reply with `rcode`.
- If `rcode` is below 0, the response is dropped.

### MiscOptimizer

- Refuses any query that is not a single IN-class question.
- For A/AAAA queries it keeps only answers of the queried type and
  shuffles them.
- Removes EDNS0 padding from the response.
- Removes EDNS0 from the response if the query had none.

### DualSelector

- Sends the A and AAAA queries in parallel.
- If the preferred family has records, it answers the other family with
  an empty reply.
- After the original query finishes, it waits for the reference query
  for at most `wait_timeout_ms` milliseconds. The default is 250.

### ReverseLookup

- Caps A/AAAA answer TTLs at `ttl` seconds. The default is 10.
- Remembers the domain for each answered address for the same time.
- `lookup(ip)` returns the remembered domain, or `""` if there is none.
- `close()` stops the background cleaner.

### Example

```python
import asyncio

import dns.message

from dnsflow.blackhole import BlackHole
from dnsflow.chain import ChainNode, QueryContext, exec_chain_node
from dnsflow.ttl import TTL

chain = ChainNode(BlackHole(ipv4="192.0.2.1"), ChainNode(TTL(maximum_ttl=300)))

qctx = QueryContext(dns.message.make_query("example.com.", "A"))
asyncio.run(exec_chain_node(qctx, chain))
print(qctx.status, qctx.r.answer)   # ContextStatus.REJECTED, 192.0.2.1 with TTL 300
```

## Matchers: `dnsflow.matchers`

Each matcher has `async match(qctx)`.

### QueryMatcher

`QueryMatcher(client_ip=(), ecs=(), domain=(), qtype=(), qclass=())`
matches only when every configured condition holds. A matcher with no
conditions never matches.

- `client_ip` and `ecs` take addresses or CIDRs.
- `domain` takes rules of the form `full:`, `domain:` (the default),
  `keyword:` or `regexp:`.

### ResponseMatcher

`ResponseMatcher(rcode=(), ip=(), cname=())` checks three things: the
response rcode, the CNAME targets and the A/AAAA addresses in the
answer.

### Other matchers

- `QueryIsEDNS0` matches queries that carry EDNS0.
- `HasValidAnswer` matches responses that have an answer record for one
  of the query's questions.

## EDNS0-only UDP upstream: `dnsflow.udpme`

`UDPMEUpstream(addr, trusted=False)` sends a query over UDP. If `addr`
has no port, port 53 is used. `await exchange(q, timeout=None)` returns
the first reply that carries EDNS0 and ignores replies that do not.

- If `q` has no EDNS0, a 512-octet EDNS0 record is added for the
  exchange and stripped from the reply again.
- The default timeout is 3 seconds.
- When time runs out, `exchange` raises `TimeoutError`.

## Message helpers: `dnsflow.dnsmsg`

### Replies

- `make_reply`
- `gen_empty_reply`

### EDNS0 and its options

- `upgrade_edns0`
- `remove_edns0`
- `get_edns0_option`
- `remove_edns0_option`

### TTLs

- `get_minimal_ttl`
- `set_ttl`
- `subtract_ttl`
- `apply_maximum_ttl`
- `apply_minimal_ttl`

### Padding

- `pad_to_minimum`

### Client subnet

- `new_edns0_subnet`
- `get_msg_ecs`
- `add_ecs`
- `remove_msg_ecs`

## Configuration files: `dnsflow.config_tools`

- `generate_config(path)` writes a template configuration.
- `convert_config(src, dst)` converts a configuration to another format.
  It refuses to overwrite an existing `dst`.

The file extension chooses the format: `json`, `toml`, `yaml` or `yml`.

## What dnsflow does not do

dnsflow is a library only. It has none of the following:

- a command-line program
- a listening DNS server
- upstream forwarding other than `UDPMEUpstream`
- response caching
- answering from zone data
- plugins that add or strip EDNS Client Subnet options
- padding plugins
- a delay plugin
- a marker plugin
- TCP/TLS server probing tools

Queries must be fed to a chain from your own code.
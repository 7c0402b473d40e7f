import socket
import threading

import dns.message
import dns.rrset
import pytest

from dnsflow.dnsmsg import make_reply, upgrade_edns0
from dnsflow.udpme import UDPMEUpstream


@pytest.fixture
def udp_server():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock
    sock.close()


def _serve_once(sock, respond):
    seen = []

    def serve():
        data, peer = sock.recvfrom(4096)
        q = dns.message.from_wire(data)
        seen.append(q)
        for r in respond(q):
            sock.sendto(r.to_wire(), peer)

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    return t, seen


def _reply(q, address, edns):
    r = make_reply(q)
    if edns:
        upgrade_edns0(r)
    r.answer.append(dns.rrset.from_text(q.question[0].name, 60, "IN", "A", address))
    return r


def test_default_port_added():
    assert UDPMEUpstream("1.2.3.4").address == "1.2.3.4:53"
    assert UDPMEUpstream("::1").address == "[::1]:53"
    assert UDPMEUpstream("127.0.0.1:5353").address == "127.0.0.1:5353"


def test_trusted_flag_kept():
    assert UDPMEUpstream("1.2.3.4", trusted=True).trusted is True
    assert UDPMEUpstream("1.2.3.4").trusted is False


@pytest.mark.asyncio
async def test_ignores_reply_without_edns(udp_server):
    port = udp_server.getsockname()[1]
    t, seen = _serve_once(
        udp_server, lambda q: [_reply(q, "6.6.6.6", False), _reply(q, "1.2.3.4", True)]
    )
    q = dns.message.make_query("example.com.", "A")
    r = await UDPMEUpstream(f"127.0.0.1:{port}").exchange(q, 2.0)
    t.join(2)
    assert r.answer[0][0].address == "1.2.3.4"
    assert r.edns < 0
    assert seen[0].edns == 0
    assert seen[0].payload == 512
    assert q.edns < 0


@pytest.mark.asyncio
async def test_edns_query_keeps_edns(udp_server):
    port = udp_server.getsockname()[1]
    t, seen = _serve_once(udp_server, lambda q: [_reply(q, "1.2.3.4", True)])
    q = dns.message.make_query("example.com.", "A", use_edns=0, payload=1232)
    r = await UDPMEUpstream(f"127.0.0.1:{port}").exchange(q, 2.0)
    t.join(2)
    assert r.edns == 0
    assert seen[0].payload == 1232
    assert r.id == q.id


@pytest.mark.asyncio
async def test_timeout_when_no_reply(udp_server):
    port = udp_server.getsockname()[1]
    q = dns.message.make_query("example.com.", "A")
    with pytest.raises(TimeoutError):
        await UDPMEUpstream(f"127.0.0.1:{port}").exchange(q, 0.2)
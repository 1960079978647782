"""Tests for the UDP transport using a fake socket."""

from __future__ import annotations

import socket

import pytest

from ft_player import transport as transport_mod
from ft_player.transport import UdpTransport


class FakeSocket:
    instances: list["FakeSocket"] = []

    def __init__(self, family: int, kind: int) -> None:
        self.family = family
        self.kind = kind
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.blocking = True
        self.closed = False
        self.error: OSError | None = None
        FakeSocket.instances.append(self)

    def setblocking(self, flag: bool) -> None:
        self.blocking = flag

    def sendto(self, payload: bytes, address: tuple[str, int]) -> int:
        if self.error is not None:
            raise self.error
        self.sent.append((payload, address))
        return len(payload)

    def close(self) -> None:
        self.closed = True


class FakeResolver:
    def __init__(self) -> None:
        self.hosts = {"display.local": "192.168.1.20"}
        self.lookups: list[str] = []
        self.error: OSError | None = None

    def __call__(self, host: str) -> str:
        self.lookups.append(host)
        if self.error is not None:
            raise self.error
        return self.hosts.get(host, host)


@pytest.fixture(autouse=True)
def fake_socket(monkeypatch: pytest.MonkeyPatch) -> None:
    FakeSocket.instances = []
    monkeypatch.setattr(transport_mod.socket, "socket", FakeSocket)


@pytest.fixture(autouse=True)
def resolver(monkeypatch: pytest.MonkeyPatch) -> FakeResolver:
    fake = FakeResolver()
    monkeypatch.setattr(transport_mod.socket, "gethostbyname", fake)
    return fake


def test_send_uses_one_nonblocking_socket() -> None:
    udp = UdpTransport("10.0.0.5", 1337)
    assert udp.send(b"abc") is True
    assert udp.send(b"def") is True
    assert len(FakeSocket.instances) == 1
    sock = FakeSocket.instances[0]
    assert sock.blocking is False
    assert sock.sent == [(b"abc", ("10.0.0.5", 1337)), (b"def", ("10.0.0.5", 1337))]


def test_send_errors_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    udp = UdpTransport("10.0.0.5")
    udp.send(b"first")
    FakeSocket.instances[0].error = OSError("unreachable")
    assert udp.send(b"second") is False
    assert "unreachable" in caplog.text


def test_close_and_context_manager() -> None:
    with UdpTransport("10.0.0.5") as udp:
        udp.send(b"x")
    assert FakeSocket.instances[0].closed is True
    udp.close()


def test_host_is_resolved_once(resolver: FakeResolver) -> None:
    udp = UdpTransport("display.local", 1337)
    assert udp.send(b"a") is True
    assert udp.send(b"b") is True
    assert resolver.lookups == ["display.local"]
    assert [address for _, address in FakeSocket.instances[0].sent] == [
        ("192.168.1.20", 1337),
        ("192.168.1.20", 1337),
    ]


def test_failed_lookup_backs_off(
    monkeypatch: pytest.MonkeyPatch,
    resolver: FakeResolver,
    caplog: pytest.LogCaptureFixture,
) -> None:
    now = [100.0]
    monkeypatch.setattr(transport_mod.time, "monotonic", lambda: now[0])
    resolver.error = socket.gaierror("Name or service not known")
    udp = UdpTransport("display.local")

    assert udp.send(b"a") is False
    assert udp.send(b"b") is False
    assert resolver.lookups == ["display.local"]
    assert "Cannot resolve display host" in caplog.text

    resolver.error = None
    now[0] += transport_mod.RESOLVE_RETRY_SECONDS
    assert udp.send(b"c") is True
    assert resolver.lookups == ["display.local", "display.local"]
    assert FakeSocket.instances[0].sent == [(b"c", ("192.168.1.20", 1337))]

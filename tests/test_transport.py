"""Tests for the control channel request/response discipline."""

import asyncio
from types import SimpleNamespace

import pytest

from iqos_control.exception import DeviceNotFound, NoResponse, TransportError
from iqos_control.transport import (
    BleakTransport,
    CharacteristicDescriptor,
    ControlChannel,
    ServiceDescriptor,
    bleak_errors,
)

from .fakes import CONTROL_CHAR, FakeTransport

PING = bytes.fromhex("00 C0 00 99")
PONG = bytes.fromhex("00 C0 88 99 01")


def test_request_returns_next_notification():
    transport = FakeTransport(responses={PING: [PONG]})

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.2)
        return await channel.request(PING)

    assert asyncio.run(scenario()) == PONG
    assert transport.writes == [PING]


def test_stale_notifications_are_discarded():
    """Anything queued before the write is not taken as the answer."""
    transport = FakeTransport(responses={PING: [PONG]})
    transport.push(bytes.fromhex("00 C0 88 00 DE AD"))

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.2)
        return await channel.request(PING)

    assert asyncio.run(scenario()) == PONG


def test_timeout_raises_and_releases_lock():
    transport = FakeTransport()

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.05)
        with pytest.raises(NoResponse) as excinfo:
            await channel.request(PING)
        assert excinfo.value.timeout == 0.05
        transport.responses[PING] = [PONG]
        return await channel.request(PING)

    assert asyncio.run(scenario()) == PONG


def test_transport_failure_releases_lock():
    transport = FakeTransport(responses={PING: [PONG]})

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.2)
        transport.fail_writes = True
        with pytest.raises(TransportError):
            await channel.request(PING)
        transport.fail_writes = False
        return await channel.request(PING)

    assert asyncio.run(scenario()) == PONG


def test_concurrent_requests_are_serialised():
    """Each caller gets the answer to its own request."""
    other = bytes.fromhex("00 C0 00 98")
    other_reply = bytes.fromhex("00 C0 88 98 02")
    transport = FakeTransport(responses={PING: [PONG], other: [other_reply]})

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.2)
        return await asyncio.gather(channel.request(PING), channel.request(other))

    assert asyncio.run(scenario()) == [PONG, other_reply]
    assert transport.writes == [PING, other]


def test_send_sequence_keeps_order():
    frames = [bytes([0x00, i]) for i in range(4)]
    transport = FakeTransport()

    async def scenario():
        await ControlChannel(transport, CONTROL_CHAR).send_sequence(frames)

    asyncio.run(scenario())
    assert transport.writes == frames


def test_request_multi_collects_in_order():
    a, b = bytes.fromhex("00 01"), bytes.fromhex("00 02")
    transport = FakeTransport(responses={a: [b"\x00\xaa", b"\x00\xcc"], b: [b"\x00\xbb"]})

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.2)
        return await channel.request_multi([a, b, a])

    assert asyncio.run(scenario()) == [b"\x00\xaa", b"\x00\xbb", b"\x00\xcc"]
    assert transport.writes == [a, b, a]


def test_request_multi_stops_on_silence():
    a = bytes.fromhex("00 01")
    transport = FakeTransport(responses={a: [b"\x00\xaa"]})

    async def scenario():
        channel = ControlChannel(transport, CONTROL_CHAR, timeout=0.05)
        return await channel.request_multi([a, a])

    with pytest.raises(NoResponse):
        asyncio.run(scenario())
    assert transport.writes == [a, a]


def test_descriptor_prefix_matching():
    char = CharacteristicDescriptor("00002A24-0000-1000-8000-00805F9B34FB", 3)
    service = ServiceDescriptor("0000180a-0000-1000-8000-00805f9b34fb", (char,))
    assert service.find("00002a24") is char
    assert service.find("00002a25") is None


def test_bleak_failures_map_to_transport_errors():
    from bleak.exc import BleakError
    from bleak_retry_connector import BleakNotFoundError

    with pytest.raises(TransportError) as excinfo:
        with bleak_errors("scanner", "scanning"):
            raise BleakError("adapter gone")
    assert isinstance(excinfo.value.__cause__, BleakError)

    with pytest.raises(DeviceNotFound):
        with bleak_errors("AA:BB", "connecting"):
            raise BleakNotFoundError("gone")


def test_bleak_transport_uses_scanned_device_as_is():
    scanned = SimpleNamespace(address="AA:BB:CC:DD:EE:FF", name=None)
    transport = BleakTransport(scanned)
    assert transport.address == "AA:BB:CC:DD:EE:FF"
    assert transport.name == "AA:BB:CC:DD:EE:FF"
    assert not transport.is_connected()

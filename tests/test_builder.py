"""Tests for the staged device initializer."""

import asyncio

import pytest

from iqos_control import commands
from iqos_control.const import CORE_SERVICE_UUID, DEVICE_INFO_SERVICE_UUID, UNKNOWN
from iqos_control.device import DeviceBuilder, InitState
from iqos_control.exception import (
    CharacteristicMissingError,
    ConfigurationError,
    NoResponse,
    ProtocolMismatch,
)
from iqos_control.models import (
    DeviceModel,
    FirmwareKind,
    FirmwareVersion,
    HolderSpecific,
    OnePiece,
    TwoPiece,
)
from iqos_control.transport import ServiceDescriptor

from .fakes import (
    BATTERY_CHAR,
    CONTROL_CHAR,
    MODEL_NUMBER_CHAR,
    SERIAL_NUMBER_CHAR,
    build_device,
    default_services,
    firmware_frame,
    init_responses,
)


@pytest.mark.parametrize(
    "name, model",
    [
        ("IQOS ILUMA 77", DeviceModel.ILUMA),
        ("IQOS ILUMA PRIME 77", DeviceModel.ILUMA_PRIME),
        ("IQOS ILUMA i 77", DeviceModel.ILUMA_I),
        ("IQOS ILUMA i PRIME 77", DeviceModel.ILUMA_I_PRIME),
    ],
)
def test_two_piece_initialization(make_transport, name, model):
    transport = make_transport(name)
    device = asyncio.run(build_device(transport))

    assert device.model is model
    assert device.serial_number == "SN-123456"
    assert device.model_number == "M0001"
    assert device.software_revision == "1.2.3"
    assert device.product_number == "STK0001"
    assert device.firmware_version == FirmwareVersion(2, 5, 10, 7)
    assert device.hardware == TwoPiece(
        HolderSpecific("HLD0002", FirmwareVersion(1, 4, 0, 6, FirmwareKind.HOLDER))
    )
    assert device.holder.product_number == "HLD0002"
    assert device.holder.firmware_version.kind is FirmwareKind.HOLDER


def test_initialization_order(make_transport):
    """Subscribe happens before the first request; holder requests come last."""
    transport = make_transport()
    asyncio.run(build_device(transport))

    assert [c.uuid for c in transport.subscribed] == [
        "e16c6e20-b041-11e4-a4c3-0002a5d5c51b"
    ]
    assert transport.writes == [
        commands.PRODUCT_NUM_SIGNAL,
        commands.LOAD_STICK_FIRMWARE_VERSION_SIGNAL,
        commands.HOLDER_PRODUCT_NUM_SIGNAL,
        commands.LOAD_HOLDER_FIRMWARE_VERSION_SIGNAL,
    ]


def test_one_piece_skips_holder(make_transport):
    transport = make_transport("IQOS ILUMA i ONE 1A2B", two_piece=False)
    device = asyncio.run(build_device(transport))

    assert device.model is DeviceModel.ILUMA_I_ONE
    assert device.hardware == OnePiece()
    assert commands.HOLDER_PRODUCT_NUM_SIGNAL not in transport.writes
    with pytest.raises(ConfigurationError):
        device.holder


def test_states_advance_in_order(make_transport):
    transport = make_transport()

    async def scenario():
        builder = DeviceBuilder(transport, timeout=0.2)
        seen = [builder.state]
        await builder.connect()
        seen.append(builder.state)
        await builder.discover_services()
        seen.append(builder.state)
        await builder.load_device_info()
        seen.append(builder.state)
        builder.load_characteristics()
        seen.append(builder.state)
        await builder.subscribe()
        seen.append(builder.state)
        await builder.load_product_number()
        seen.append(builder.state)
        await builder.load_firmware_version()
        seen.append(builder.state)
        await builder.load_holder_info()
        seen.append(builder.state)
        builder.build()
        seen.append(builder.state)
        return seen

    assert asyncio.run(scenario()) == list(InitState)


def test_steps_cannot_be_skipped(make_transport):
    transport = make_transport()

    async def scenario():
        builder = DeviceBuilder(transport)
        await builder.connect()
        with pytest.raises(ConfigurationError):
            await builder.load_device_info()
        assert builder.state is InitState.CONNECTED

    asyncio.run(scenario())


def test_missing_serial_number_fails_build(make_transport):
    transport = make_transport(services=default_services(serial=False))
    with pytest.raises(ConfigurationError, match="Serial number"):
        asyncio.run(build_device(transport))


def test_missing_battery_characteristic_fails_build(make_transport):
    transport = make_transport(services=default_services(battery=False))
    with pytest.raises(ConfigurationError, match="Battery characteristic"):
        asyncio.run(build_device(transport))


def test_missing_control_characteristic_is_fatal_before_requests(make_transport):
    transport = make_transport(services=default_services(control=False))
    with pytest.raises(CharacteristicMissingError):
        asyncio.run(build_device(transport))
    assert transport.writes == []
    assert transport.subscribed == []


def test_missing_peripheral():
    with pytest.raises(ConfigurationError, match="Peripheral"):
        DeviceBuilder(None).build()


def test_build_before_firmware_names_missing_field(make_transport):
    transport = make_transport()

    async def scenario():
        builder = DeviceBuilder(transport, timeout=0.2)
        await builder.connect()
        await builder.discover_services()
        await builder.load_device_info()
        builder.load_characteristics()
        with pytest.raises(ConfigurationError, match="Firmware version"):
            builder.build()

    asyncio.run(scenario())


def test_optional_device_info_defaults_to_unknown(make_transport):
    """Absent or non UTF-8 device information becomes the placeholder."""
    services = [
        ServiceDescriptor(DEVICE_INFO_SERVICE_UUID, (MODEL_NUMBER_CHAR, SERIAL_NUMBER_CHAR)),
        ServiceDescriptor(CORE_SERVICE_UUID, (BATTERY_CHAR, CONTROL_CHAR)),
    ]
    transport = make_transport(services=services)
    transport.reads[MODEL_NUMBER_CHAR.uuid] = b"\xff\xfe"
    device = asyncio.run(build_device(transport))
    assert device.model_number == UNKNOWN
    assert device.manufacturer_name == UNKNOWN
    assert device.serial_number == "SN-123456"


def test_undecodable_product_number_is_unknown(make_transport):
    responses = init_responses()
    responses[commands.PRODUCT_NUM_SIGNAL] = [bytes.fromhex("00 C0 77 03 41 42")]
    responses[commands.HOLDER_PRODUCT_NUM_SIGNAL] = [bytes.fromhex("00 08")]
    transport = make_transport(responses=responses)
    device = asyncio.run(build_device(transport))
    assert device.product_number == UNKNOWN
    assert device.holder.product_number == UNKNOWN


def test_bad_firmware_frame_propagates(make_transport):
    responses = init_responses()
    responses[commands.LOAD_STICK_FIRMWARE_VERSION_SIGNAL] = [firmware_frame(0x08, 1, 1, 1, 1)]
    transport = make_transport(responses=responses)
    with pytest.raises(ProtocolMismatch):
        asyncio.run(build_device(transport))


def test_silent_device_raises_no_response(make_transport):
    transport = make_transport(responses={})
    with pytest.raises(NoResponse):
        asyncio.run(build_device(transport, timeout=0.05))


def test_undetected_model_is_a_configuration_error(make_transport, monkeypatch):
    import iqos_control.device as device_module

    monkeypatch.setattr(device_module, "get_model_from_name", lambda name: None)
    transport = make_transport()
    with pytest.raises(ConfigurationError, match="Model is required"):
        asyncio.run(build_device(transport))
    assert commands.HOLDER_PRODUCT_NUM_SIGNAL not in transport.writes

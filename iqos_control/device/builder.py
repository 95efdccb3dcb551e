# iqos_control/device/builder.py
"""Staged initialization of an IQOS device.

The builder walks a connected transport through a fixed sequence of steps and
collects everything an `IqosDevice` needs:

    UNCONNECTED → CONNECTED → SERVICES_DISCOVERED → DEVICE_INFO_READ
    → CHARACTERISTICS_RESOLVED → SUBSCRIBED → PRODUCT_NUMBER_LOADED
    → FIRMWARE_LOADED → [HOLDER_INFO_LOADED] → BUILT

The holder step only runs for two-piece hardware. Each step must be called in
order; `initialize()` runs them all.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from .. import commands
from ..const import (
    BATTERY_CHARACTERISTIC_UUID,
    CORE_SERVICE_UUID,
    DEFAULT_RESPONSE_TIMEOUT,
    DEVICE_INFO_SERVICE_UUID,
    MANUFACTURER_NAME_CHAR_UUID,
    MODEL_NUMBER_CHAR_UUID,
    SCP_CONTROL_CHARACTERISTIC_UUID,
    SERIAL_NUMBER_CHAR_UUID,
    SOFTWARE_REVISION_CHAR_UUID,
    UNKNOWN,
)
from ..exception import (
    CharacteristicMissingError,
    ConfigurationError,
    FrameTooShort,
    ProtocolMismatch,
)
from ..models import (
    DeviceModel,
    FirmwareKind,
    FirmwareVersion,
    Hardware,
    HolderSpecific,
    OnePiece,
    TwoPiece,
)
from ..protocol import (
    decode_firmware,
    decode_holder_product_number,
    decode_product_number,
    to_hex,
)
from ..transport import (
    CharacteristicDescriptor,
    ControlChannel,
    ServiceDescriptor,
    Transport,
)
from .iqos_device import IqosDevice

__all__ = ["InitState", "DeviceBuilder"]


class InitState(Enum):
    UNCONNECTED = 0
    CONNECTED = 1
    SERVICES_DISCOVERED = 2
    DEVICE_INFO_READ = 3
    CHARACTERISTICS_RESOLVED = 4
    SUBSCRIBED = 5
    PRODUCT_NUMBER_LOADED = 6
    FIRMWARE_LOADED = 7
    HOLDER_INFO_LOADED = 8
    BUILT = 9


# device-information attribute -> characteristic UUID prefix
_DEVICE_INFO_FIELDS = (
    ("_model_number", MODEL_NUMBER_CHAR_UUID),
    ("_serial_number", SERIAL_NUMBER_CHAR_UUID),
    ("_software_revision", SOFTWARE_REVISION_CHAR_UUID),
    ("_manufacturer_name", MANUFACTURER_NAME_CHAR_UUID),
)


class DeviceBuilder:
    """Turns a transport into a ready-to-use :class:`IqosDevice`.

    Example::

        builder = DeviceBuilder(BleakTransport(ble_device))
        await builder.initialize()
        device = builder.build()
    """

    def __init__(
        self,
        transport: Transport | None,
        timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        address = transport.address if transport is not None else "unknown"
        self._logger = logging.getLogger(address.replace(":", "-"))
        self._state = InitState.UNCONNECTED

        self._services: List[ServiceDescriptor] = []
        self._model: Optional[DeviceModel] = None
        self._model_number: Optional[str] = None
        self._serial_number: Optional[str] = None
        self._software_revision: Optional[str] = None
        self._manufacturer_name: Optional[str] = None
        self._battery_char: Optional[CharacteristicDescriptor] = None
        self._control_char: Optional[CharacteristicDescriptor] = None
        self._channel: Optional[ControlChannel] = None
        self._product_number: Optional[str] = None
        self._firmware_version: Optional[FirmwareVersion] = None
        self._holder_product_number: Optional[str] = None
        self._holder_firmware_version: Optional[FirmwareVersion] = None

    # ---- properties ----
    @property
    def state(self) -> InitState:
        return self._state

    @property
    def model(self) -> Optional[DeviceModel]:
        return self._model

    @property
    def name(self) -> str:
        return self._peripheral().name

    # ---- state handling ----
    def _peripheral(self) -> Transport:
        if self._transport is None:
            raise ConfigurationError("Peripheral is required")
        return self._transport

    def _expect(self, state: InitState, step: str) -> None:
        if self._state is not state:
            raise ConfigurationError(
                f"Cannot {step} in state {self._state.name}; expected {state.name}"
            )

    def _advance(self, state: InitState) -> None:
        self._logger.debug(
            "%s: Initialization %s -> %s", self.name, self._state.name, state.name
        )
        self._state = state

    def _require_model(self) -> DeviceModel:
        if self._model is None:
            raise ConfigurationError("Model is required")
        return self._model

    def _require_channel(self) -> ControlChannel:
        if self._channel is None:
            raise CharacteristicMissingError("SCP control characteristic is required")
        return self._channel

    # ---- steps ----
    async def initialize(self) -> "DeviceBuilder":
        """Run every initialization step in order."""
        await self.connect()
        await self.discover_services()
        await self.load_device_info()
        self.load_characteristics()
        await self.subscribe()
        await self.load_product_number()
        await self.load_firmware_version()
        if not self._require_model().is_one_piece:
            await self.load_holder_info()
        return self

    async def connect(self) -> None:
        self._expect(InitState.UNCONNECTED, "connect")
        await self._peripheral().connect()
        self._advance(InitState.CONNECTED)

    async def discover_services(self) -> List[ServiceDescriptor]:
        self._expect(InitState.CONNECTED, "discover services")
        self._services = list(await self._peripheral().discover_services())
        self._logger.debug(
            "%s: Discovered services %s", self.name, [s.uuid for s in self._services]
        )
        self._advance(InitState.SERVICES_DISCOVERED)
        return self._services

    def _find_service(self, uuid: str) -> ServiceDescriptor | None:
        for service in self._services:
            if service.matches(uuid):
                return service
        return None

    async def load_device_info(self) -> None:
        """Read the device-information strings and detect the model family.

        Every characteristic here is optional. A value that is not valid
        UTF-8 is treated as absent; a failed read propagates.
        """
        self._expect(InitState.SERVICES_DISCOVERED, "read device information")
        from . import get_model_from_name  # registry lives in the package

        peripheral = self._peripheral()
        self._model = get_model_from_name(peripheral.name)
        self._logger.debug("%s: Detected model %s", self.name, self._model)

        service = self._find_service(DEVICE_INFO_SERVICE_UUID)
        if service is not None:
            for attr, uuid_prefix in _DEVICE_INFO_FIELDS:
                char = service.find(uuid_prefix)
                if char is None:
                    continue
                data = await peripheral.read(char)
                try:
                    setattr(self, attr, data.decode("utf-8"))
                except UnicodeDecodeError:
                    self._logger.warning(
                        "%s: Ignoring non UTF-8 value of %s: %s",
                        self.name,
                        char.uuid,
                        to_hex(data),
                    )
        else:
            self._logger.debug("%s: No device information service", self.name)
        self._advance(InitState.DEVICE_INFO_READ)

    def load_characteristics(self) -> None:
        """Resolve the battery and control characteristics of the core service."""
        self._expect(InitState.DEVICE_INFO_READ, "resolve characteristics")
        service = self._find_service(CORE_SERVICE_UUID)
        if service is not None:
            self._battery_char = service.find(BATTERY_CHARACTERISTIC_UUID)
            self._control_char = service.find(SCP_CONTROL_CHARACTERISTIC_UUID)
        if self._control_char is None:
            raise CharacteristicMissingError("SCP control characteristic is required")
        self._channel = ControlChannel(
            self._peripheral(), self._control_char, self._timeout, logger=self._logger
        )
        self._advance(InitState.CHARACTERISTICS_RESOLVED)

    async def subscribe(self) -> None:
        self._expect(InitState.CHARACTERISTICS_RESOLVED, "subscribe")
        channel = self._require_channel()
        self._logger.debug("%s: Subscribe to notifications", self.name)
        await self._peripheral().subscribe(channel.characteristic)
        self._advance(InitState.SUBSCRIBED)

    async def load_product_number(self) -> None:
        self._expect(InitState.SUBSCRIBED, "load product number")
        data = await self._require_channel().request(commands.PRODUCT_NUM_SIGNAL)
        try:
            self._product_number = decode_product_number(data)
        except (ProtocolMismatch, FrameTooShort) as ex:
            self._logger.warning("%s: Could not decode product number: %s", self.name, ex)
        self._advance(InitState.PRODUCT_NUMBER_LOADED)

    async def load_firmware_version(self) -> None:
        self._expect(InitState.PRODUCT_NUMBER_LOADED, "load firmware version")
        data = await self._require_channel().request(
            commands.LOAD_STICK_FIRMWARE_VERSION_SIGNAL
        )
        self._firmware_version = decode_firmware(data, FirmwareKind.VAPE)
        self._advance(InitState.FIRMWARE_LOADED)

    async def load_holder_info(self) -> None:
        """Load the holder product number and firmware (two-piece only)."""
        self._expect(InitState.FIRMWARE_LOADED, "load holder information")
        if self._model is not None and self._model.is_one_piece:
            raise ConfigurationError(f"{self._model} has no holder")
        channel = self._require_channel()

        data = await channel.request(commands.HOLDER_PRODUCT_NUM_SIGNAL)
        try:
            self._holder_product_number = decode_holder_product_number(data)
        except (ProtocolMismatch, FrameTooShort) as ex:
            self._logger.warning(
                "%s: Could not decode holder product number: %s", self.name, ex
            )

        data = await channel.request(commands.LOAD_HOLDER_FIRMWARE_VERSION_SIGNAL)
        self._holder_firmware_version = decode_firmware(data, FirmwareKind.HOLDER)
        self._advance(InitState.HOLDER_INFO_LOADED)

    # ---- assembly ----
    def _hardware(self, model: DeviceModel) -> Hardware:
        if model.is_one_piece:
            return OnePiece()
        if self._holder_firmware_version is None:
            raise ConfigurationError("Holder firmware version is required")
        return TwoPiece(
            HolderSpecific(
                product_number=self._holder_product_number or UNKNOWN,
                firmware_version=self._holder_firmware_version,
            )
        )

    def build(self) -> IqosDevice:
        """Assemble the device, naming the first missing mandatory field."""
        peripheral = self._peripheral()
        if self._model is None:
            raise ConfigurationError("Model is required")
        if self._serial_number is None:
            raise ConfigurationError("Serial number is required")
        if self._battery_char is None:
            raise ConfigurationError("Battery characteristic is required")
        if self._control_char is None or self._channel is None:
            raise ConfigurationError("SCP control characteristic is required")
        if self._firmware_version is None:
            raise ConfigurationError("Firmware version is required")

        device = IqosDevice(
            transport=peripheral,
            model=self._model,
            model_number=self._model_number or UNKNOWN,
            serial_number=self._serial_number,
            software_revision=self._software_revision or UNKNOWN,
            manufacturer_name=self._manufacturer_name or UNKNOWN,
            battery_characteristic=self._battery_char,
            channel=self._channel,
            product_number=self._product_number or UNKNOWN,
            firmware_version=self._firmware_version,
            hardware=self._hardware(self._model),
        )
        self._advance(InitState.BUILT)
        return device

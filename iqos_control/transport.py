# iqos_control/transport.py
"""BLE transport for IQOS devices.

Notes:
- `Transport` is the contract the initializer and the device handle consume;
  tests substitute an in-memory implementation.
- `BleakTransport` is the production implementation. bleak and
  bleak-retry-connector are imported lazily so the codec modules stay
  importable without a BLE stack.
- `ControlChannel` owns the request/response discipline on the control
  characteristic: one outstanding request at a time, bounded wait.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    ContextManager,
    Iterable,
    Iterator,
    List,
    Protocol,
    Tuple,
)

# Editor-only types; avoid importing bleak at runtime unless needed.
if TYPE_CHECKING:  # pragma: no cover
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
else:
    BLEDevice = Any
    BleakGATTCharacteristic = Any

from .const import DEFAULT_RESPONSE_TIMEOUT
from .exception import DeviceNotFound, NoResponse, TransportError
from .protocol import to_hex

__all__ = [
    "CharacteristicDescriptor",
    "ServiceDescriptor",
    "Notification",
    "Transport",
    "BleakTransport",
    "ControlChannel",
    "bleak_errors",
    "discover_ble_devices",
    "find_ble_device",
]

_LOGGER = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────
# Descriptors
# ────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class CharacteristicDescriptor:
    uuid: str
    handle: int = 0
    properties: Tuple[str, ...] = ()

    def matches(self, uuid_or_prefix: str) -> bool:
        """Case-insensitive match on a full UUID or its leading group(s)."""
        return self.uuid.lower().startswith(uuid_or_prefix.lower())


@dataclass(frozen=True)
class ServiceDescriptor:
    uuid: str
    characteristics: Tuple[CharacteristicDescriptor, ...] = ()

    def matches(self, uuid_or_prefix: str) -> bool:
        return self.uuid.lower().startswith(uuid_or_prefix.lower())

    def find(self, uuid_or_prefix: str) -> CharacteristicDescriptor | None:
        for char in self.characteristics:
            if char.matches(uuid_or_prefix):
                return char
        return None


@dataclass(frozen=True)
class Notification:
    characteristic_uuid: str
    value: bytes


class Transport(Protocol):
    """What the core needs from a BLE link."""

    @property
    def name(self) -> str: ...

    @property
    def address(self) -> str: ...

    async def connect(self) -> None: ...

    async def discover_services(self) -> List[ServiceDescriptor]: ...

    async def read(self, characteristic: CharacteristicDescriptor) -> bytes: ...

    async def write(
        self,
        characteristic: CharacteristicDescriptor,
        data: bytes,
        response: bool = True,
    ) -> None: ...

    async def subscribe(self, characteristic: CharacteristicDescriptor) -> None: ...

    def notifications(self) -> "asyncio.Queue[Notification]": ...

    def is_connected(self) -> bool: ...

    async def disconnect(self) -> None: ...


# ────────────────────────────────────────────────────────────────
# bleak implementation
# ────────────────────────────────────────────────────────────────
def _import_bleak_retry():
    """Lazy import bleak-retry-connector items when actually needed."""
    from bleak.exc import BleakError
    from bleak_retry_connector import (
        BLEAK_RETRY_EXCEPTIONS as BLEAK_EXCEPTIONS,
        BleakClientWithServiceCache,
        BleakNotFoundError,
        establish_connection,
    )

    return {
        "BLEAK_EXCEPTIONS": (BleakError, *BLEAK_EXCEPTIONS),
        "BleakClientWithServiceCache": BleakClientWithServiceCache,
        "BleakNotFoundError": BleakNotFoundError,
        "establish_connection": establish_connection,
    }


@contextlib.contextmanager
def bleak_errors(
    name: str,
    action: str,
    logger: logging.Logger = _LOGGER,
) -> Iterator[None]:
    """Re-raise bleak failures inside the block as `IQOSError` subclasses."""
    bits = _import_bleak_retry()
    try:
        yield
    except bits["BleakNotFoundError"] as ex:
        raise DeviceNotFound(f"{name}: device not found while {action}") from ex
    except bits["BLEAK_EXCEPTIONS"] as ex:
        logger.debug("%s: %s failed", name, action, exc_info=True)
        raise TransportError(f"{name}: {action} failed: {ex}") from ex


async def find_ble_device(address: str, scan_timeout: float) -> BLEDevice | None:
    """Scan for one advertised address; None when it is not seen in time."""
    from bleak import BleakScanner  # lazy import

    with bleak_errors(address, "scanning"):
        return await BleakScanner.find_device_by_address(address, timeout=scan_timeout)


async def discover_ble_devices(scan_timeout: float) -> List[BLEDevice]:
    from bleak import BleakScanner  # lazy import

    with bleak_errors("scanner", "scanning"):
        return list(await BleakScanner.discover(timeout=scan_timeout))


class BleakTransport:
    """`Transport` over a bleak client obtained from bleak-retry-connector."""

    def __init__(self, ble_device: BLEDevice) -> None:
        self._ble_device = ble_device
        self._logger = logging.getLogger(self._ble_device.address.replace(":", "-"))
        self._client: Any = None  # BleakClientWithServiceCache | None
        self._queue: asyncio.Queue[Notification] = asyncio.Queue()
        self._expected_disconnect = False

    @property
    def address(self) -> str:
        return self._ble_device.address

    @property
    def name(self) -> str:
        return getattr(self._ble_device, "name", None) or self._ble_device.address

    def _bleak_errors(self, action: str) -> ContextManager[None]:
        return bleak_errors(self.name, action, self._logger)

    def _require_client(self) -> Any:
        if self._client is None:
            raise TransportError(f"{self.name}: not connected")
        return self._client

    async def connect(self) -> None:
        if self.is_connected():
            return
        bits = _import_bleak_retry()
        self._logger.debug("%s: Connecting", self.name)
        self._expected_disconnect = False
        with self._bleak_errors("connecting"):
            self._client = await bits["establish_connection"](
                bits["BleakClientWithServiceCache"],
                self._ble_device,
                self.name,
                self._disconnected,
                use_services_cache=True,
                ble_device_callback=lambda: self._ble_device,
            )
        self._logger.debug("%s: Connected", self.name)

    async def discover_services(self) -> List[ServiceDescriptor]:
        client = self._require_client()
        services = []
        for service in client.services:
            chars = tuple(
                CharacteristicDescriptor(
                    uuid=char.uuid,
                    handle=char.handle,
                    properties=tuple(char.properties),
                )
                for char in service.characteristics
            )
            services.append(ServiceDescriptor(uuid=service.uuid, characteristics=chars))
        return services

    async def read(self, characteristic: CharacteristicDescriptor) -> bytes:
        client = self._require_client()
        with self._bleak_errors(f"reading {characteristic.uuid}"):
            data = await client.read_gatt_char(characteristic.handle)
        return bytes(data)

    async def write(
        self,
        characteristic: CharacteristicDescriptor,
        data: bytes,
        response: bool = True,
    ) -> None:
        client = self._require_client()
        with self._bleak_errors(f"writing {characteristic.uuid}"):
            await client.write_gatt_char(characteristic.handle, data, response)

    async def subscribe(self, characteristic: CharacteristicDescriptor) -> None:
        client = self._require_client()
        with self._bleak_errors(f"subscribing to {characteristic.uuid}"):
            await client.start_notify(characteristic.handle, self._notification_handler)

    def notifications(self) -> "asyncio.Queue[Notification]":
        return self._queue

    def is_connected(self) -> bool:
        return bool(self._client and getattr(self._client, "is_connected", False))

    async def disconnect(self) -> None:
        self._logger.debug("%s: Disconnecting", self.name)
        client = self._client
        self._expected_disconnect = True
        self._client = None
        if client and getattr(client, "is_connected", False):
            with self._bleak_errors("disconnecting"):
                await client.disconnect()

    def _notification_handler(self, sender: BleakGATTCharacteristic, data: bytearray) -> None:
        self._logger.debug("%s: Notification received: %s", self.name, to_hex(data))
        self._queue.put_nowait(Notification(str(sender.uuid), bytes(data)))

    def _disconnected(self, client: Any) -> None:
        if self._expected_disconnect:
            self._logger.debug("%s: Disconnected from device", self.name)
            return
        self._logger.warning("%s: Device unexpectedly disconnected", self.name)


# ────────────────────────────────────────────────────────────────
# Control characteristic request/response
# ────────────────────────────────────────────────────────────────
class ControlChannel:
    """Serialised access to the control characteristic.

    The wire format has no request identifiers, so a response is matched to
    its request purely by arrival order. `request` therefore holds the lock
    from before the write until the answer (or the timeout) and throws away
    anything that was already queued when it started.
    """

    def __init__(
        self,
        transport: Transport,
        characteristic: CharacteristicDescriptor,
        timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._characteristic = characteristic
        self._timeout = timeout
        self._logger = logger or _LOGGER
        self._queue = transport.notifications()
        self._operation_lock: asyncio.Lock = asyncio.Lock()

    @property
    def characteristic(self) -> CharacteristicDescriptor:
        return self._characteristic

    @property
    def timeout(self) -> float:
        return self._timeout

    def _log_wait(self) -> None:
        if self._operation_lock.locked():
            self._logger.debug(
                "%s: Operation already in progress, waiting for it to complete",
                self._transport.name,
            )

    async def _write(self, frame: bytes) -> None:
        self._logger.debug("%s: TX %s", self._transport.name, to_hex(frame))
        await self._transport.write(self._characteristic, bytes(frame), response=True)

    def _drain_stale(self) -> None:
        while True:
            try:
                stale = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._logger.debug(
                "%s: Discarding stale notification: %s",
                self._transport.name,
                to_hex(stale.value),
            )

    async def send(self, frame: bytes) -> None:
        """Write one frame; nothing is awaited from the device."""
        self._log_wait()
        async with self._operation_lock:
            await self._write(frame)

    async def send_sequence(self, frames: Iterable[bytes]) -> None:
        """Write *frames* in order without any response wait between them."""
        self._log_wait()
        async with self._operation_lock:
            for frame in frames:
                await self._write(frame)

    async def request(self, frame: bytes) -> bytes:
        """Write *frame* and return the value of the next notification.

        Raises:
            NoResponse: Nothing arrived within the channel timeout.
            TransportError: The write failed.
        """
        self._log_wait()
        async with self._operation_lock:
            self._drain_stale()
            await self._write(frame)
            try:
                notification = await asyncio.wait_for(self._queue.get(), self._timeout)
            except asyncio.TimeoutError as ex:
                self._logger.debug(
                    "%s: No response to %s within %ss",
                    self._transport.name,
                    to_hex(frame),
                    self._timeout,
                )
                raise NoResponse(self._timeout) from ex
            self._logger.debug("%s: RX %s", self._transport.name, to_hex(notification.value))
            return notification.value

    async def request_multi(self, frames: Iterable[bytes]) -> List[bytes]:
        """Issue each frame as its own request; responses come back in order."""
        return [await self.request(frame) for frame in frames]

# iqos_control/iqosctl.py
"""IQOS control CLI entrypoint.

Device commands scan for the given address, run the full initialization,
perform one operation and disconnect again. The `decode-*` commands run the
frame codec over hex input and never touch Bluetooth.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable, List, TypeVar

import typer
from rich import print
from rich.table import Table
from typer import Context
from typing_extensions import Annotated

from .const import DEFAULT_RESPONSE_TIMEOUT, DEFAULT_SCAN_TIMEOUT
from .diagnosis import DiagnosisReport, collect_diagnosis
from .exception import IQOSError
from .models import BrightnessLevel, FirmwareKind, VibrationSettings
from .protocol import decode_firmware, decode_holder_product_number, decode_product_number

_T = TypeVar("_T")

app = typer.Typer(help="IQOS device control")


# ────────────────────────────────────────────────────────────────
# Global options
# ────────────────────────────────────────────────────────────────
@app.callback()
def _global_options(
    ctx: Context,
    debug: Annotated[
        bool,
        typer.Option("--debug/--no-debug", help="Enable verbose debug logging"),
    ] = False,
    timeout: Annotated[
        float,
        typer.Option(help="Seconds to wait for each device response"),
    ] = DEFAULT_RESPONSE_TIMEOUT,
    scan_timeout: Annotated[
        float,
        typer.Option(help="Seconds to scan for the device"),
    ] = DEFAULT_SCAN_TIMEOUT,
) -> None:
    ctx.obj = {"timeout": timeout, "scan_timeout": scan_timeout}

    if debug:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_level=True)],
        )
        logging.getLogger("bleak").setLevel(logging.DEBUG)
        logging.getLogger("iqos_control").setLevel(logging.DEBUG)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────
def _parse_hex_blob(blob: str) -> bytes:
    s = "".join(blob.strip().split())
    if len(s) % 2 != 0:
        raise typer.BadParameter("Hex length must be even.")
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid hex: {e}") from e


def _fail(ex: Exception) -> typer.Exit:
    print(f"[red]{type(ex).__name__}: {ex}[/red]")
    return typer.Exit(1)


def _run_device_func(
    ctx: Context,
    device_address: str,
    func: Callable[[Any], Awaitable[_T]],
) -> _T:
    """Connect, initialize, run *func* on the device and always disconnect."""
    from .device import get_device_from_address  # lazy (pulls in bleak)

    opts = ctx.obj or {}

    async def _async_func() -> _T:
        dev = await get_device_from_address(
            device_address,
            timeout=opts.get("timeout", DEFAULT_RESPONSE_TIMEOUT),
            scan_timeout=opts.get("scan_timeout", DEFAULT_SCAN_TIMEOUT),
        )
        try:
            return await func(dev)
        finally:
            await dev.disconnect()

    try:
        return asyncio.run(_async_func())
    except IQOSError as ex:
        raise _fail(ex) from ex


def _diagnosis_table(report: DiagnosisReport) -> Table:
    table = Table("Field", "Value")
    for field_name, value in dataclasses.asdict(report).items():
        table.add_row(field_name, "-" if value is None else str(value))
    return table


# ────────────────────────────────────────────────────────────────
# Device commands
# ────────────────────────────────────────────────────────────────
@app.command(name="list-devices")
def list_devices(ctx: Context) -> None:
    """List nearby bluetooth devices and the IQOS model they advertise."""
    from .device import match_model_from_name
    from .transport import discover_ble_devices

    timeout = (ctx.obj or {}).get("scan_timeout", DEFAULT_SCAN_TIMEOUT)
    print("Scanning for Bluetooth devices…")
    table = Table("Name", "Address", "Model")
    try:
        devices = asyncio.run(discover_ble_devices(timeout))
    except IQOSError as ex:
        raise _fail(ex) from ex
    for device in devices:
        model = match_model_from_name(device.name)
        table.add_row(device.name or "(unknown)", device.address, str(model) if model else "???")
    print("Discovered devices:")
    print(table)


@app.command()
def info(ctx: Context, device_address: str) -> None:
    """Show identifiers and firmware versions."""

    async def _info(dev: Any) -> str:
        return dev.describe()

    print(_run_device_func(ctx, device_address, _info))


@app.command()
def battery(ctx: Context, device_address: str) -> None:
    """Read the battery percentage."""

    async def _battery(dev: Any) -> int:
        return await dev.reload_battery()

    level = _run_device_func(ctx, device_address, _battery)
    print(f"Battery: {level}%")


@app.command()
def vibrate(ctx: Context, device_address: str) -> None:
    """Start vibrating (find my device)."""
    print(f"Connect to device {device_address} and vibrate")
    _run_device_func(ctx, device_address, lambda dev: dev.vibrate())


@app.command(name="stop-vibrate")
def stop_vibrate(ctx: Context, device_address: str) -> None:
    """Stop vibrating."""
    _run_device_func(ctx, device_address, lambda dev: dev.stop_vibrate())


@app.command()
def lock(ctx: Context, device_address: str) -> None:
    """Lock the device."""
    print(f"Connect to device {device_address} and lock")
    _run_device_func(ctx, device_address, lambda dev: dev.lock_device())


@app.command()
def unlock(ctx: Context, device_address: str) -> None:
    """Unlock the device."""
    print(f"Connect to device {device_address} and unlock")
    _run_device_func(ctx, device_address, lambda dev: dev.unlock_device())


@app.command()
def brightness(ctx: Context, device_address: str) -> None:
    """Read the LED brightness."""
    level = _run_device_func(ctx, device_address, lambda dev: dev.load_brightness())
    print(f"Brightness: {str(level)}")


@app.command(name="set-brightness")
def set_brightness(
    ctx: Context,
    device_address: str,
    level: Annotated[str, typer.Argument(help="high or low")],
) -> None:
    """Set the LED brightness."""
    try:
        value = BrightnessLevel[level.upper()]
    except KeyError as e:
        raise typer.BadParameter("Brightness must be 'high' or 'low'.") from e
    _run_device_func(ctx, device_address, lambda dev: dev.update_brightness(value))


@app.command()
def vibration(ctx: Context, device_address: str) -> None:
    """Show which events make the device vibrate."""
    settings = _run_device_func(ctx, device_address, lambda dev: dev.load_vibration_settings())
    table = Table("Event", "Vibrate")
    for behavior, enabled in settings.as_behaviors().items():
        table.add_row(behavior.name.lower().replace("_", " "), "yes" if enabled else "no")
    print(table)


@app.command(name="set-vibration")
def set_vibration(
    ctx: Context,
    device_address: str,
    heating_start: Annotated[bool, typer.Option("--heating-start/--no-heating-start")] = False,
    starting_to_use: Annotated[
        bool, typer.Option("--starting-to-use/--no-starting-to-use")
    ] = False,
    puff_end: Annotated[bool, typer.Option("--puff-end/--no-puff-end")] = False,
    manually_terminated: Annotated[
        bool, typer.Option("--manually-terminated/--no-manually-terminated")
    ] = False,
    charging_start: Annotated[
        bool, typer.Option("--charging-start/--no-charging-start")
    ] = False,
) -> None:
    """Choose which events make the device vibrate."""
    settings = VibrationSettings(
        when_heating_start=heating_start,
        when_starting_to_use=starting_to_use,
        when_puff_end=puff_end,
        when_manually_terminated=manually_terminated,
        when_charging_start=charging_start,
    )
    _run_device_func(ctx, device_address, lambda dev: dev.update_vibration_settings(settings))


@app.command()
def diagnosis(ctx: Context, device_address: str) -> None:
    """Read usage counters and battery voltage."""
    report = _run_device_func(ctx, device_address, lambda dev: dev.diagnosis())
    print(_diagnosis_table(report))


@app.command()
def telemetry(ctx: Context, device_address: str) -> None:
    """Read the total usage counter."""
    result = _run_device_func(ctx, device_address, lambda dev: dev.telemetry())
    print(f"Total usage count: {result.total_usage_count}")


# ────────────────────────────────────────────────────────────────
# Offline decoders
# ────────────────────────────────────────────────────────────────
@app.command(name="decode-firmware")
def decode_firmware_cmd(
    payload: Annotated[str, typer.Argument(help="Response frame as hex")],
    holder: Annotated[bool, typer.Option("--holder/--stick", help="Frame kind")] = False,
) -> None:
    """Decode a firmware-version response."""
    kind = FirmwareKind.HOLDER if holder else FirmwareKind.VAPE
    try:
        version = decode_firmware(_parse_hex_blob(payload), kind)
    except IQOSError as ex:
        raise _fail(ex) from ex
    print(f"{kind.value} firmware {version}")


@app.command(name="decode-diagnosis")
def decode_diagnosis_cmd(
    payloads: Annotated[List[str], typer.Argument(help="Response frames as hex, in arrival order")],
) -> None:
    """Merge diagnosis responses into one report."""
    frames = [_parse_hex_blob(p) for p in payloads]
    try:
        report = collect_diagnosis(frames)
    except IQOSError as ex:
        raise _fail(ex) from ex
    print(_diagnosis_table(report))


@app.command(name="decode-identifier")
def decode_identifier_cmd(
    payload: Annotated[str, typer.Argument(help="Response frame as hex")],
    holder: Annotated[bool, typer.Option("--holder/--stick", help="Frame kind")] = False,
) -> None:
    """Decode a product-number response."""
    decoder = decode_holder_product_number if holder else decode_product_number
    try:
        identifier = decoder(_parse_hex_blob(payload))
    except IQOSError as ex:
        raise _fail(ex) from ex
    typer.echo(identifier)


if __name__ == "__main__":
    app()

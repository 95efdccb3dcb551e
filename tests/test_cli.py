"""Tests for the CLI commands."""

from bleak import BleakScanner
from bleak.exc import BleakError
from typer.testing import CliRunner

from iqos_control.iqosctl import app

from .fakes import battery_voltage_frame, product_number_frame, telemetry_frame

runner = CliRunner()


def test_decode_firmware():
    result = runner.invoke(app, ["decode-firmware", "00C0880000000205 0A07"])
    assert result.exit_code == 0
    assert "v2.5.10.7" in result.output


def test_decode_holder_firmware():
    result = runner.invoke(app, ["decode-firmware", "--holder", "00 08 88 00 00 00 01 04 00 06"])
    assert result.exit_code == 0
    assert "holder firmware v1.4.0.6" in result.output


def test_decode_firmware_mismatch_exits_with_error():
    result = runner.invoke(app, ["decode-firmware", "00 08 88 00 00 00 01 04 00 06"])
    assert result.exit_code == 1
    assert "ProtocolMismatch" in result.output


def test_decode_firmware_rejects_bad_hex():
    result = runner.invoke(app, ["decode-firmware", "00C"])
    assert result.exit_code != 0


def test_decode_identifier():
    result = runner.invoke(app, ["decode-identifier", product_number_frame("STK0001").hex()])
    assert result.exit_code == 0
    assert result.output.strip() == "STK0001"


def test_decode_diagnosis_merges_frames():
    result = runner.invoke(
        app,
        [
            "decode-diagnosis",
            telemetry_frame(321, 4).hex(),
            battery_voltage_frame(3650).hex(),
        ],
    )
    assert result.exit_code == 0
    assert "321" in result.output
    assert "3.65" in result.output


def test_decode_diagnosis_too_short():
    result = runner.invoke(app, ["decode-diagnosis", "00 C0 88"])
    assert result.exit_code == 1
    assert "FrameTooShort" in result.output


def _adapter_missing(*args, **kwargs):
    async def _raise():
        raise BleakError("Bluetooth adapter not available")

    return _raise()


def test_scan_failure_is_reported(monkeypatch):
    monkeypatch.setattr(BleakScanner, "find_device_by_address", _adapter_missing)
    result = runner.invoke(app, ["info", "AA:BB:CC:DD:EE:FF"])
    assert result.exit_code == 1
    assert "TransportError" in result.output


def test_list_devices_scan_failure_is_reported(monkeypatch):
    monkeypatch.setattr(BleakScanner, "discover", _adapter_missing)
    result = runner.invoke(app, ["list-devices"])
    assert result.exit_code == 1
    assert "TransportError" in result.output


def test_device_not_seen(monkeypatch):
    async def _nothing(*args, **kwargs):
        return None

    monkeypatch.setattr(BleakScanner, "find_device_by_address", _nothing)
    result = runner.invoke(app, ["battery", "AA:BB:CC:DD:EE:FF"])
    assert result.exit_code == 1
    assert "DeviceNotFound" in result.output

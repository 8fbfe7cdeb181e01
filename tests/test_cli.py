"""Tests for CLI module - value parsing and command structure."""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner
from conftest import FakeTransport

from pypego_modbus.cli import app, format_value, parse_bool, parse_int, parse_value
from pypego_modbus.client import PegoClient, explain_property
from pypego_modbus.errors import RequestFailedError
from pypego_modbus.registers import get_default_register_map
from pypego_modbus.types import PropertyKind

runner = CliRunner()


# ============================================================================
# Value Parsing Tests
# ============================================================================


class TestParseBool:
    """Test boolean value parsing."""

    def test_true_variants(self) -> None:
        for val in ["true", "True", "TRUE", "1", "on", "ON", "yes", "YES"]:
            assert parse_bool(val) is True

    def test_false_variants(self) -> None:
        for val in ["false", "False", "FALSE", "0", "off", "OFF", "no", "NO"]:
            assert parse_bool(val) is False

    def test_invalid_values(self) -> None:
        with pytest.raises(ValueError, match="Invalid boolean value"):
            parse_bool("maybe")
        with pytest.raises(ValueError):
            parse_bool("")


class TestParseInt:
    """Test register integer parsing."""

    def test_decimal(self) -> None:
        assert parse_int("0") == 0
        assert parse_int("-100") == -100
        assert parse_int("65535") == 65535

    def test_hexadecimal(self) -> None:
        assert parse_int("0x0101") == 257
        assert parse_int("  0xFF  ") == 255

    def test_range_validation(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            parse_int("-32769")
        with pytest.raises(ValueError, match="out of range"):
            parse_int("65536")

    def test_invalid_values(self) -> None:
        with pytest.raises(ValueError):
            parse_int("abc")
        with pytest.raises(ValueError):
            parse_int("12.34")


class TestParseValue:
    """Test kind-directed value parsing."""

    def test_scaled_accepts_decimals(self) -> None:
        assert parse_value("21.5", PropertyKind.SCALED) == 21.5

    def test_raw_accepts_integers(self) -> None:
        assert parse_value("-5", PropertyKind.RAW) == -5

    def test_flags_accept_booleans(self) -> None:
        assert parse_value("on", PropertyKind.COMMAND_FLAG) is True
        assert parse_value("0", PropertyKind.SWITCH) is False


def test_format_value() -> None:
    assert format_value(True) == "true"
    assert format_value(False) == "false"
    assert format_value(21.5) == "21.5"
    assert format_value(-5) == "-5"


# ============================================================================
# Command Structure Tests (with mocked client)
# ============================================================================


def _mock_client(mock_client_class: MagicMock) -> MagicMock:
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client
    mock_client.register_map = get_default_register_map()
    return mock_client


@patch("pypego_modbus.cli.PegoClient")
def test_ping_command(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_raw.return_value = 0x0001

    result = runner.invoke(app, ["ping", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 0
    assert "OK: Device 1 responded" in result.stdout
    assert "0x0001" in result.stdout
    assert mock_client_class.call_args[1]["port"] == "/dev/ttyUSB0"


@patch("pypego_modbus.cli.PegoClient")
def test_ping_transport_error_exit_code(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_raw.side_effect = RequestFailedError("timeout")

    result = runner.invoke(app, ["ping", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 3


def test_port_or_host_required() -> None:
    result = runner.invoke(app, ["read", "ambient_temperature"])
    assert result.exit_code == 2


def test_info_command_local() -> None:
    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "version:" in result.stdout.lower()
    assert "model:" in result.stdout.lower()


def test_info_command_json() -> None:
    result = runner.invoke(app, ["info", "--json", "--model", "ecp_base"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["model"] == "ecp_base"
    assert data["properties"] > 0


@patch("pypego_modbus.cli.PegoClient")
def test_info_reports_responsiveness(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.is_responsive.return_value = True

    result = runner.invoke(app, ["info", "--host", "10.0.0.5", "--json", "--threshold", "60"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["responsive"] is True
    assert mock_client_class.call_args[1]["threshold_s"] == 60.0


@patch("pypego_modbus.cli.PegoClient")
def test_read_command(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.get.return_value = 21.5

    result = runner.invoke(app, ["read", "temperature_set_point", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 0
    assert "21.5" in result.stdout
    mock_client.get.assert_called_once_with("temperature_set_point")


@patch("pypego_modbus.cli.PegoClient")
def test_read_command_json(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.get.return_value = True

    result = runner.invoke(app, ["read", "door_switch_status", "--port", "/dev/ttyUSB0", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data == {"name": "door_switch_status", "value": True}


@patch("pypego_modbus.cli.PegoClient")
def test_read_command_raw(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_raw.return_value = 0x0105

    result = runner.invoke(app, ["read", "alarm_status", "--port", "/dev/ttyUSB0", "--raw"])

    assert result.exit_code == 0
    assert "0x0105" in result.stdout
    assert "low.0 low.2 high.0" in result.stdout


@patch("pypego_modbus.cli.PegoClient")
def test_write_command_scaled(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)

    result = runner.invoke(app, ["write", "temperature_set_point", "21.5", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 0
    assert "OK: Wrote temperature_set_point = 21.5" in result.stdout
    mock_client.set.assert_called_once_with("temperature_set_point", 21.5)


@patch("pypego_modbus.cli.PegoClient")
def test_write_command_by_code_negative(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)

    # Use -- so -5 is not parsed as an option
    result = runner.invoke(app, ["write", "--port", "/dev/ttyUSB0", "d2", "--", "-5"])

    assert result.exit_code == 0
    assert "end_of_defrosting_temperature = -5" in result.stdout
    mock_client.set.assert_called_once_with("d2", -5)


@patch("pypego_modbus.cli.PegoClient")
def test_write_command_bool(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)

    result = runner.invoke(app, ["write", "device_stand_by_status", "on", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 0
    mock_client.set.assert_called_once_with("device_stand_by_status", True)


@patch("pypego_modbus.cli.PegoClient")
def test_write_command_invalid_value(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)

    result = runner.invoke(app, ["write", "temperature_set_point", "warm", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 2
    mock_client.set.assert_not_called()


@patch("pypego_modbus.cli.PegoClient")
def test_write_command_unknown_property(mock_client_class: MagicMock) -> None:
    _mock_client(mock_client_class)

    result = runner.invoke(app, ["write", "warp_drive", "1", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 2


def test_explain_command() -> None:
    result = runner.invoke(app, ["explain", "temperatureSetPoint"])

    assert result.exit_code == 0
    assert "temperature_set_point" in result.stdout
    assert "holding_register" in result.stdout
    assert "768" in result.stdout
    assert "1/10" in result.stdout


def test_explain_command_json_flag() -> None:
    result = runner.invoke(app, ["explain", "device_stand_by_status", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["address"] == 1536
    assert data["kind"] == "command_flag"
    assert data["byte"] == "low"
    assert data["bit"] == 0
    assert data["writable"] is True


def test_explain_unknown_for_model() -> None:
    result = runner.invoke(app, ["explain", "buzzer_enable", "--model", "ecp_base"])
    assert result.exit_code == 2


def test_list_command() -> None:
    result = runner.invoke(app, ["list", "--json"])

    assert result.exit_code == 0
    rows = json.loads(result.stdout)
    names = {row["name"] for row in rows}
    assert {"ambient_temperature", "compressor_relay_status", "device_stand_by_status"} <= names


@patch("pypego_modbus.cli.PegoClient")
def test_read_many_command(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.return_value = {"ambient_temperature": 4.2, "compressor_relay_status": True}

    result = runner.invoke(app, ["read-many", "ambient_temperature", "compressor_relay_status", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["ambient_temperature"] == 4.2
    assert data["compressor_relay_status"] is True
    mock_client.read_many.assert_called_once_with(["ambient_temperature", "compressor_relay_status"])


@patch("pypego_modbus.cli.PegoClient")
def test_poll_command_once(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.return_value = {"ambient_temperature": 4.2}

    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--once"])

    assert result.exit_code == 0
    assert "ambient_temperature=4.2" in result.stdout


@patch("pypego_modbus.cli.PegoClient")
def test_poll_command_json_once(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.return_value = {"ambient_temperature": 4.2}

    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--once", "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert "timestamp" in data
    assert data["values"]["ambient_temperature"] == 4.2


@patch("pypego_modbus.cli.PegoClient")
def test_poll_command_csv_once(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.return_value = {"ambient_temperature": 4.2, "door_switch_status": False}

    result = runner.invoke(
        app, ["poll", "ambient_temperature", "door_switch_status", "--port", "/dev/ttyUSB0", "--once", "--format", "csv"]
    )

    assert result.exit_code == 0
    lines = result.stdout.strip().split("\n")
    assert len(lines) == 2
    assert lines[0] == "timestamp,ambient_temperature,door_switch_status"
    assert lines[1].endswith(",4.2,false")


@patch("pypego_modbus.cli.PegoClient")
def test_poll_gives_up_when_unresponsive(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.side_effect = RequestFailedError("timeout")
    mock_client.tracker.is_responsive.return_value = False

    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0"])

    assert result.exit_code == 3


@patch("pypego_modbus.cli.PegoClient")
def test_poll_tolerates_failure_within_grace(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.read_many.side_effect = RequestFailedError("timeout")
    mock_client.tracker.is_responsive.return_value = True

    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--once"])

    assert result.exit_code == 0


def test_poll_invalid_interval() -> None:
    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--interval", "0"])
    assert result.exit_code == 2


def test_poll_invalid_format() -> None:
    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--format", "xml"])
    assert result.exit_code == 2


def test_command_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("ping", "info", "list", "read", "write", "explain", "read-many", "poll"):
        assert command in result.stdout


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pypego-modbus" in result.stdout


def test_read_unknown_model() -> None:
    result = runner.invoke(app, ["read", "ambient_temperature", "--port", "/dev/ttyUSB0", "--model", "ecp_999"])
    assert result.exit_code == 2


@patch("pypego_modbus.cli.PegoClient")
def test_poll_connect_failure_exit_code(mock_client_class: MagicMock) -> None:
    mock_client = _mock_client(mock_client_class)
    mock_client.__enter__.side_effect = RequestFailedError("Failed to connect to /dev/ttyUSB0")

    result = runner.invoke(app, ["poll", "ambient_temperature", "--port", "/dev/ttyUSB0", "--once"])

    assert result.exit_code == 3
    mock_client.read_many.assert_not_called()


@patch("pypego_modbus.cli.PegoClient")
def test_info_unreachable_device_within_grace_period(mock_client_class: MagicMock) -> None:
    transport = FakeTransport()
    transport.fail = True
    mock_client_class.side_effect = lambda **kwargs: PegoClient(transport=transport, threshold_s=kwargs["threshold_s"])

    result = runner.invoke(app, ["info", "--port", "/dev/ttyUSB0", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["responsive"] is True
    assert len(transport.reads) == 1
    assert transport.closed is True


def test_explain_matches_library_description() -> None:
    result = runner.invoke(app, ["explain", "HSE", "--json"])

    assert result.exit_code == 0
    expected = explain_property(get_default_register_map().resolve("HSE")).to_dict()
    assert json.loads(result.stdout) == expected
    assert expected["function_used"] == "read_holding_registers"


def test_explain_text_shows_modbus_function() -> None:
    result = runner.invoke(app, ["explain", "ambient_temperature"])

    assert result.exit_code == 0
    assert "read_holding_registers" in result.stdout

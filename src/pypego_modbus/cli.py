#!/usr/bin/env python3
"""Command-line interface for pypego-modbus using Typer."""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .bitfield import flags_set
from .client import PegoClient, Value, explain_property
from .errors import (
    EncodingError,
    InvalidPropertyError,
    ReadOnlyPropertyError,
    TransportError,
    UnknownPropertyError,
)
from .registers import get_default_register_map
from .tracker import DEFAULT_THRESHOLD_S
from .types import PropertyKind

app = typer.Typer(
    name="pypego",
    help="Read and configure Pego ECP cold-store controllers over Modbus RTU or TCP.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

PortOption = Annotated[
    Optional[str],
    typer.Option("--port", "-p", help="Serial device of the RS-485 adapter (e.g. /dev/ttyUSB0)", envvar="PYPEGO_PORT"),
]
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Modbus TCP gateway hostname or IP address", envvar="PYPEGO_HOST"),
]
TcpPortOption = Annotated[
    int,
    typer.Option("--tcp-port", help="Modbus TCP port", envvar="PYPEGO_TCP_PORT"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus peripheral ID of the controller", envvar="PYPEGO_UNIT_ID"),
]
BaudrateOption = Annotated[
    int,
    typer.Option("--baudrate", "-b", help="Serial baud rate (8N1)", envvar="PYPEGO_BAUDRATE"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Request timeout in seconds", envvar="PYPEGO_TIMEOUT"),
]
RetriesOption = Annotated[
    int,
    typer.Option("--retries", "-r", help="Transport-level retries per request", envvar="PYPEGO_RETRIES"),
]
ModelOption = Annotated[
    str,
    typer.Option("--model", "-m", help="Device model: ecp_202 or ecp_base", envvar="PYPEGO_MODEL"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_client(
    port: Optional[str],
    host: Optional[str],
    tcp_port: int,
    unit_id: int,
    baudrate: int,
    timeout: float,
    retries: int,
    model: str,
    threshold_s: float = DEFAULT_THRESHOLD_S,
) -> PegoClient:
    """Create and return a PegoClient instance."""
    if not port and not host:
        typer.echo("Error: --port (serial) or --host (TCP) is required for this command", err=True)
        raise typer.Exit(2)
    if port and host:
        typer.echo("Error: use either --port or --host, not both", err=True)
        raise typer.Exit(2)
    try:
        return PegoClient(
            port=port,
            host=host,
            tcp_port=tcp_port,
            unit_id=unit_id,
            model=model,
            baudrate=baudrate,
            timeout=timeout,
            retries=retries,
            threshold_s=threshold_s,
        )
    except ValueError as e:
        # Unknown model, or a non-positive threshold
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_int(value: str) -> int:
    """Parse a register integer (decimal, or hex with 0x prefix); -32768..65535."""
    v = value.strip()
    if v.lower().startswith("0x"):
        num = int(v, 16)
    else:
        num = int(v)
    if not (-32768 <= num <= 65535):
        raise ValueError(f"16-bit integer out of range: {num}")
    return num


def parse_value(value: str, kind: PropertyKind) -> Value:
    """Parse a command-line value according to the property kind."""
    if kind == PropertyKind.SCALED:
        return float(value.strip())
    if kind == PropertyKind.RAW:
        return parse_int(value)
    return parse_bool(value)


def format_value(value: Value) -> str:
    """Format value for display."""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _fail(message: str, code: int, verbose: bool = False) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    if verbose and code == 4:
        import traceback

        traceback.print_exc()
    return typer.Exit(code)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def ping(
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    verbose: VerboseOption = False,
) -> None:
    """
    Test connectivity with a heartbeat read of the device status register.
    """
    setup_logging(verbose)

    try:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model)
        with client:
            word = client.read_raw("device_stand_by_status")
            typer.echo(f"OK: Device {unit_id} responded, device status = 0x{word:04X}")
    except TransportError as e:
        raise _fail(f"Connection/Modbus error: {e}", 3)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"Unexpected error: {e}", 4, verbose)


@app.command()
def info(
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    threshold: Annotated[
        float,
        typer.Option("--threshold", help="Responsiveness grace period in seconds", envvar="PYPEGO_THRESHOLD"),
    ] = DEFAULT_THRESHOLD_S,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show package version, device model and optionally device responsiveness.

    Without --port/--host: shows local metadata only.
    """
    setup_logging(verbose)

    try:
        properties = len(get_default_register_map(model))
    except ValueError as e:
        raise _fail(str(e), 2)

    info_data: dict = {
        "version": __version__,
        "model": model,
        "properties": properties,
    }

    if port or host:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model, threshold)
        # The heartbeat connects lazily, so a failed connect falls under the grace period too
        try:
            info_data["responsive"] = client.is_responsive()
        finally:
            client.close()

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"pypego-modbus version: {info_data['version']}")
        typer.echo(f"Model: {info_data['model']}")
        typer.echo(f"Properties: {info_data['properties']}")
        if "responsive" in info_data:
            typer.echo(f"Responsive: {'yes' if info_data['responsive'] else 'no'}")


@app.command(name="list")
def list_properties(
    model: ModelOption = "ecp_202",
    json_output: JsonOption = False,
) -> None:
    """
    List the properties available for a device model. Does not require a connection.
    """
    try:
        regmap = get_default_register_map(model)
    except ValueError as e:
        raise _fail(str(e), 2)

    rows = [
        {
            "name": p.name,
            "kind": p.kind.value,
            "code": p.code,
            "address": p.register.address,
            "writable": p.writable,
            "unit": p.unit,
        }
        for p in regmap
    ]
    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return
    for row in rows:
        access = "rw" if row["writable"] else "r "
        code = row["code"] or ""
        unit = row["unit"] or ""
        typer.echo(f"{row['address']:>5} {access} {row['kind']:<12} {code:<4} {row['name']} {unit}".rstrip())


@app.command()
def read(
    name: Annotated[str, typer.Argument(help="Property name or device code (e.g. ambient_temperature, r0)")],
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    raw: Annotated[bool, typer.Option("--raw", help="Print the unconverted register word and its set bits")] = False,
) -> None:
    """
    Read a single property from the controller.
    """
    setup_logging(verbose)

    try:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model)

        with client:
            if raw:
                word = client.read_raw(name)
                bits = [f"{byte.value}.{bit}" for byte, bit in flags_set(word)]
                if json_output:
                    typer.echo(json.dumps({"name": name, "raw": word, "bits": bits}))
                else:
                    typer.echo(f"0x{word:04X} bits: {' '.join(bits) or '-'}")
                return
            value = client.get(name)
            if json_output:
                typer.echo(json.dumps({"name": name, "value": value}))
            else:
                typer.echo(format_value(value))
    except (InvalidPropertyError, UnknownPropertyError) as e:
        raise _fail(str(e), 2)
    except TransportError as e:
        raise _fail(f"Connection/Modbus error: {e}", 3)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"Unexpected error: {e}", 4, verbose)


@app.command()
def write(
    name: Annotated[str, typer.Argument(help="Property to write (e.g. temperature_set_point, device_stand_by_status)")],
    value: Annotated[str, typer.Argument(help="Value: number for parameters, true/false/1/0/on/off for switches and commands")],
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    verbose: VerboseOption = False,
) -> None:
    """
    Write a value to a single property.

    Scaled parameters accept decimals (e.g. 21.5), raw parameters accept
    integers (decimal or 0x hex), switches and commands accept booleans.
    """
    setup_logging(verbose)

    try:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model)
        defn = client.register_map.resolve(name)
        try:
            parsed = parse_value(value, defn.kind)
        except ValueError as e:
            raise _fail(f"Invalid value: {e}", 2)

        with client:
            client.set(name, parsed)
            typer.echo(f"OK: Wrote {defn.name} = {format_value(parsed)}")
    except (InvalidPropertyError, UnknownPropertyError, ReadOnlyPropertyError, EncodingError) as e:
        raise _fail(str(e), 2)
    except TransportError as e:
        raise _fail(f"Connection/Modbus error: {e}", 3)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"Unexpected error: {e}", 4, verbose)


@app.command()
def explain(
    name: Annotated[str, typer.Argument(help="Property to explain (e.g. ambientTemperature, HSE)")],
    model: ModelOption = "ecp_202",
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show register, encoding and Modbus function used for a property.

    Does not require a connection; uses the packaged register table only.
    """
    setup_logging(verbose)

    try:
        regmap = get_default_register_map(model)
        info = explain_property(regmap.resolve(name)).to_dict()

        if json_output:
            typer.echo(json.dumps(info, indent=2))
        else:
            typer.echo(f"Property:        {info['name']}")
            typer.echo(f"Kind:            {info['kind']}")
            if info["code"]:
                typer.echo(f"Device code:     {info['code']}")
            typer.echo(f"Modbus table:    {info['address_space']}")
            typer.echo(f"Register:        {info['register']}")
            typer.echo(f"Address:         {info['address']}")
            typer.echo(f"Modbus function: {info['function_used']}")
            typer.echo(f"Signed:          {str(info['signed']).lower()}")
            typer.echo(f"Scale:           {info['scale']}")
            if info["bit"] is not None:
                typer.echo(f"Bit:             {info['byte']} byte, bit {info['bit']}")
            typer.echo(f"Writable:        {str(info['writable']).lower()}")
    except (InvalidPropertyError, UnknownPropertyError, ValueError) as e:
        raise _fail(str(e), 2)


@app.command(name="read-many")
def read_many(
    names: Annotated[list[str], typer.Argument(help="Properties to read (space-separated)")],
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    verbose: VerboseOption = False,
) -> None:
    """
    Read several properties; flags sharing a status register cost one request.
    """
    setup_logging(verbose)

    try:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model)
        with client:
            results = client.read_many(names)
            typer.echo(json.dumps(results, indent=2))
    except (InvalidPropertyError, UnknownPropertyError) as e:
        raise _fail(str(e), 2)
    except TransportError as e:
        raise _fail(f"Connection/Modbus error: {e}", 3)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"Unexpected error: {e}", 4, verbose)


@app.command()
def poll(
    names: Annotated[list[str], typer.Argument(help="Properties to poll")],
    port: PortOption = None,
    host: HostOption = None,
    tcp_port: TcpPortOption = 502,
    unit_id: UnitIdOption = 1,
    baudrate: BaudrateOption = 9600,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    model: ModelOption = "ecp_202",
    threshold: Annotated[
        float,
        typer.Option("--threshold", help="Responsiveness grace period in seconds", envvar="PYPEGO_THRESHOLD"),
    ] = DEFAULT_THRESHOLD_S,
    verbose: VerboseOption = False,
    interval: Annotated[float, typer.Option("--interval", "-i", help="Polling interval in seconds")] = 5.0,
    once: Annotated[bool, typer.Option("--once", help="Poll once and exit")] = False,
    format: Annotated[str, typer.Option("--format", "-f", help="Output format: text, json, csv")] = "text",
) -> None:
    """
    Continuously poll properties at the given interval.

    A failed cycle is reported and skipped; polling stops with exit code 3
    only once the device has been unresponsive for the whole grace period
    (--threshold).

    Output formats:
    - text: timestamp + name=value pairs (default)
    - json: NDJSON with {"timestamp": "...", "values": {...}} per line
    - csv: names as columns, one row per poll cycle
    """
    setup_logging(verbose)

    if format not in ("text", "json", "csv"):
        raise _fail(f"Invalid format '{format}'. Must be text, json, or csv.", 2)

    if interval <= 0:
        raise _fail(f"Interval must be positive, got {interval}", 2)

    if not names:
        raise _fail("At least one property is required for poll", 2)

    try:
        client = create_client(port, host, tcp_port, unit_id, baudrate, timeout, retries, model, threshold)
        # Validate names before touching the bus
        for name in names:
            client.register_map.resolve(name)

        if format == "csv":
            typer.echo("timestamp," + ",".join(names))

        with client:
            while True:
                timestamp = datetime.now(timezone.utc).isoformat()
                try:
                    results = client.read_many(names)
                except TransportError as e:
                    typer.echo(f"{timestamp} Error: {e}", err=True)
                    if not client.tracker.is_responsive():
                        raise _fail("Device unresponsive, giving up", 3)
                else:
                    formatted = {name: format_value(results[name]) for name in names}
                    if format == "text":
                        pairs = " ".join(f"{name}={formatted[name]}" for name in names)
                        typer.echo(f"{timestamp} {pairs}")
                    elif format == "json":
                        typer.echo(json.dumps({"timestamp": timestamp, "values": results}))
                    elif format == "csv":
                        typer.echo(timestamp + "," + ",".join(formatted[name] for name in names))

                if once:
                    break
                time.sleep(interval)

    except (InvalidPropertyError, UnknownPropertyError) as e:
        raise _fail(str(e), 2)
    except TransportError as e:
        raise _fail(f"Connection/Modbus error: {e}", 3)
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(f"Unexpected error: {e}", 4, verbose)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pypego-modbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pypego - Pego ECP controller operations via Modbus."""
    pass


if __name__ == "__main__":
    app()

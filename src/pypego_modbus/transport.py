"""Modbus transport over pymodbus: RS-485 RTU by default, TCP for serial gateways."""

import logging
from typing import Any, Protocol

from pymodbus.client import ModbusSerialClient, ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import RequestFailedError
from .types import AddressSpace

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
DEFAULT_PERIPHERAL_ID = 1

_READ_FUNCTION: dict[AddressSpace, str] = {
    AddressSpace.COIL: "read_coils",
    AddressSpace.DISCRETE_INPUT: "read_discrete_inputs",
    AddressSpace.INPUT_REGISTER: "read_input_registers",
    AddressSpace.HOLDING_REGISTER: "read_holding_registers",
}

_WRITE_FUNCTION: dict[AddressSpace, str] = {
    AddressSpace.COIL: "write_coil",
    AddressSpace.HOLDING_REGISTER: "write_register",
}


def read_function(address_space: AddressSpace) -> str:
    """Name of the pymodbus call used to read `address_space`."""
    return _READ_FUNCTION[address_space]


class Transport(Protocol):
    """Request/response collaborator used by the transaction executor."""

    def request_read(
        self, peripheral_id: int, address_space: AddressSpace, address: int, count: int = 1
    ) -> list[int]: ...

    def request_write(self, peripheral_id: int, address_space: AddressSpace, address: int, value: int) -> None: ...

    def close(self) -> None: ...


class PymodbusTransport:
    """
    Transport backed by a pymodbus client, connected lazily on first request.

    Pass `port` (e.g. /dev/ttyUSB0) for Modbus RTU over RS-485, or `host` for
    Modbus TCP. pymodbus handles framing, CRC and byte order.
    """

    def __init__(
        self,
        port: str | None = None,
        host: str | None = None,
        tcp_port: int = 502,
        baudrate: int = DEFAULT_BAUDRATE,
        bytesize: int = 8,
        parity: str = "N",
        stopbits: int = 1,
        timeout: float = 3.0,
        retries: int = 3,
    ) -> None:
        if (port is None) == (host is None):
            raise ValueError("Exactly one of port (serial) or host (TCP) is required")
        self._port = port
        self._host = host
        self._tcp_port = tcp_port
        self._baudrate = baudrate
        self._bytesize = bytesize
        self._parity = parity
        self._stopbits = stopbits
        self._timeout = timeout
        self._retries = retries
        self._client: ModbusSerialClient | ModbusTcpClient | None = None

    @property
    def target(self) -> str:
        """Human-readable endpoint, used in log and error messages."""
        if self._host is not None:
            return f"{self._host}:{self._tcp_port}"
        return f"{self._port}@{self._baudrate}/{self._bytesize}{self._parity}{self._stopbits}"

    def _get_client(self) -> ModbusSerialClient | ModbusTcpClient:
        if self._client is None:
            if self._host is not None:
                client: ModbusSerialClient | ModbusTcpClient = ModbusTcpClient(
                    host=self._host,
                    port=self._tcp_port,
                    timeout=self._timeout,
                    retries=self._retries,
                )
            else:
                client = ModbusSerialClient(
                    port=self._port,
                    baudrate=self._baudrate,
                    bytesize=self._bytesize,
                    parity=self._parity,
                    stopbits=self._stopbits,
                    timeout=self._timeout,
                    retries=self._retries,
                )
            if not client.connect():
                raise RequestFailedError(f"Failed to connect to {self.target}")
            logger.debug("Connected to %s", self.target)
            self._client = client
        return self._client

    def connect(self) -> None:
        """Open the serial port or TCP connection."""
        self._get_client()

    def close(self) -> None:
        """Close the connection."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Error closing Modbus client: %s", e)
            self._client = None

    def _call(self, func_name: str, address_space: AddressSpace, address: int, *args: Any, **kwargs: Any) -> Any:
        client = self._get_client()
        try:
            rr = getattr(client, func_name)(address, *args, **kwargs)
        except PymodbusException as e:
            raise RequestFailedError(
                str(e), address=address, address_space=address_space.value, cause=e
            ) from e
        if rr is None or rr.isError():
            raise RequestFailedError(
                f"{func_name} failed: {rr}",
                address=address,
                address_space=address_space.value,
                cause=getattr(rr, "exception", None),
            )
        return rr

    def request_read(
        self, peripheral_id: int, address_space: AddressSpace, address: int, count: int = 1
    ) -> list[int]:
        """Read `count` values; bits are returned as 0/1. May return fewer values than requested."""
        rr = self._call(_READ_FUNCTION[address_space], address_space, address, count=count, device_id=peripheral_id)
        if address_space in (AddressSpace.COIL, AddressSpace.DISCRETE_INPUT):
            bits = getattr(rr, "bits", None) or []
            return [int(bool(b)) for b in bits[:count]]
        registers = getattr(rr, "registers", None) or []
        return [int(r) for r in registers[:count]]

    def request_write(self, peripheral_id: int, address_space: AddressSpace, address: int, value: int) -> None:
        """Write one coil or one holding register."""
        func_name = _WRITE_FUNCTION.get(address_space)
        if func_name is None:
            raise RequestFailedError(
                f"Write not supported for table {address_space.value}",
                address=address,
                address_space=address_space.value,
            )
        payload: bool | int = bool(value) if address_space == AddressSpace.COIL else int(value)
        self._call(func_name, address_space, address, payload, device_id=peripheral_id)

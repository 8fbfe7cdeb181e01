"""PegoClient: table-driven typed access to Pego ECP controller properties over Modbus."""

import logging
import time
from typing import Any, Iterator

from . import bitfield, codec
from .errors import EncodingError, ReadOnlyPropertyError, TransportError
from .executor import TransactionExecutor
from .registers import HEARTBEAT_REGISTER, RegisterMap, get_default_register_map
from .tracker import DEFAULT_THRESHOLD_S, ResponsivenessTracker
from .transport import DEFAULT_BAUDRATE, DEFAULT_PERIPHERAL_ID, PymodbusTransport, Transport, read_function
from .types import DeviceModel, ExplainInfo, PropertyDef, PropertyKind, RegisterDescriptor

logger = logging.getLogger(__name__)

Value = bool | int | float


def explain_property(defn: PropertyDef) -> ExplainInfo:
    """Describe where and how a property lives on the device. No I/O."""
    reg = defn.register
    return ExplainInfo(
        name=defn.name,
        kind=defn.kind,
        code=defn.code,
        register=reg.name,
        address_space=reg.address_space,
        address=reg.address,
        signed=reg.signed,
        scale=reg.scale,
        byte=defn.byte,
        bit=defn.bit,
        writable=defn.writable,
        function_used=read_function(reg.address_space),
    )


class DeviceProperty:
    """Typed get/set pair for one property, bound to a client."""

    def __init__(self, client: "PegoClient", definition: PropertyDef) -> None:
        self._client = client
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    def get(self) -> Value:
        return self._client._get(self.definition)

    def set(self, value: Value) -> None:
        self._client._set(self.definition, value)

    def __repr__(self) -> str:
        return f"DeviceProperty({self.name!r}, kind={self.definition.kind.value})"


class PegoClient:
    """
    High-level client that reads/writes Pego controller properties by name
    (e.g. ambient_temperature, temperature_set_point, device_stand_by_status).

    Every property is driven by one immutable descriptor table; values are
    decoded according to the property kind. Wraps a pymodbus RTU client by
    default (`port`), or Modbus TCP when `host` is given.

    `model` selects the packaged register table. When `map_override` is
    given, `model` is ignored and the override's own model applies.
    """

    def __init__(
        self,
        port: str | None = None,
        host: str | None = None,
        tcp_port: int = 502,
        unit_id: int = DEFAULT_PERIPHERAL_ID,
        model: DeviceModel | str = DeviceModel.ECP_202,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = 3.0,
        retries: int = 3,
        threshold_s: float = DEFAULT_THRESHOLD_S,
        map_override: RegisterMap | None = None,
        transport: Transport | None = None,
        tracker: ResponsivenessTracker | None = None,
    ) -> None:
        self._map = map_override if map_override is not None else get_default_register_map(model)
        self._transport: Transport = (
            transport
            if transport is not None
            else PymodbusTransport(
                port=port,
                host=host,
                tcp_port=tcp_port,
                baudrate=baudrate,
                timeout=timeout,
                retries=retries,
            )
        )
        self._tracker = tracker if tracker is not None else ResponsivenessTracker(threshold_s)
        self._executor = TransactionExecutor(self._transport, unit_id, self._tracker)

    @property
    def model(self) -> DeviceModel:
        return self._map.model

    @property
    def register_map(self) -> RegisterMap:
        return self._map

    @property
    def tracker(self) -> ResponsivenessTracker:
        return self._tracker

    def connect(self) -> None:
        """Open the connection to the controller."""
        connect = getattr(self._transport, "connect", None)
        if connect is not None:
            connect()

    def close(self) -> None:
        """Close the connection."""
        self._transport.close()

    def __enter__(self) -> "PegoClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # Decoding

    def _decode(self, defn: PropertyDef, raw: int) -> Value:
        kind = defn.kind
        reg = defn.register
        if kind == PropertyKind.SCALED:
            return codec.apply_scale(codec.decode_signed(raw, reg.signed), reg.scale)
        if kind == PropertyKind.RAW:
            return codec.decode_signed(raw, reg.signed)
        if kind == PropertyKind.SWITCH:
            return codec.decode_signed(raw, reg.signed) == 1
        if kind in (PropertyKind.STATUS_FLAG, PropertyKind.COMMAND_FLAG):
            return bitfield.read_flag(raw, defn.byte, defn.bit)  # type: ignore[arg-type]
        if kind == PropertyKind.ANY_FLAG:
            return any(self._decode(self._map.lookup(member), raw) for member in defn.any_of)
        raise ValueError(f"Unsupported property kind: {kind}")

    def _encode(self, defn: PropertyDef, value: Value) -> int:
        kind = defn.kind
        reg = defn.register
        if kind == PropertyKind.SCALED:
            return codec.encode_word(codec.unapply_scale(float(value), reg.scale))
        if kind == PropertyKind.RAW:
            if isinstance(value, float) and not value.is_integer():
                raise EncodingError(value, f"{defn.name} takes whole numbers, got {value!r}")
            return codec.encode_word(int(value))
        if kind == PropertyKind.SWITCH:
            return 1 if value else 0
        if kind == PropertyKind.COMMAND_FLAG:
            return bitfield.encode_write_intent(defn.bit, bool(value))  # type: ignore[arg-type]
        raise ReadOnlyPropertyError(defn.name)

    # Transactions

    def _read_register(self, reg: RegisterDescriptor, defn: PropertyDef | None = None) -> int:
        try:
            return self._executor.read(reg)
        except TransportError as e:
            if defn is not None:
                e.property_name = defn.name
            raise

    def _get(self, defn: PropertyDef) -> Value:
        return self._decode(defn, self._read_register(defn.register, defn))

    def _set(self, defn: PropertyDef, value: Value) -> None:
        if not defn.writable:
            raise ReadOnlyPropertyError(defn.name)
        word = self._encode(defn, value)
        try:
            self._executor.write(defn.register, word)
        except TransportError as e:
            e.property_name = defn.name
            raise
        logger.info("Set %s = %r (register %d <- 0x%04X)", defn.name, value, defn.register.address, word)

    # Public API

    def handle(self, name: str) -> DeviceProperty:
        """Return the typed get/set handle for a property name or device code."""
        return DeviceProperty(self, self._map.resolve(name))

    def properties(self) -> list[str]:
        """Names of all properties available for this device model."""
        return self._map.names()

    def get(self, name: str) -> Value:
        """Read a property: float for scaled, int for raw, bool for switches and flags."""
        return self._get(self._map.resolve(name))

    def set(self, name: str, value: Value) -> None:
        """Write a property. Status flags and read-only parameters raise ReadOnlyPropertyError."""
        self._set(self._map.resolve(name), value)

    def read_raw(self, name: str) -> int:
        """Read the unconverted 16-bit word of the register behind a property."""
        return self._read_register(self._map.resolve(name).register)

    def read_many(self, names: list[str]) -> dict[str, Value]:
        """
        Read several properties. Each distinct register is read once per call
        (status flags sharing a word are decoded from one transaction); the
        first failure propagates.
        """
        if not names:
            return {}
        words: dict[str, int] = {}
        out: dict[str, Value] = {}
        for name in names:
            defn = self._map.resolve(name)
            reg = defn.register
            if reg.name not in words:
                words[reg.name] = self._read_register(reg, defn)
            out[name] = self._decode(defn, words[reg.name])
        return out

    def snapshot(self) -> dict[str, Value]:
        """Read every property of the device model."""
        return self.read_many(self.properties())

    def is_responsive(self) -> bool:
        """
        Probe the device status register. On success the device is responsive;
        on failure it stays responsive until no transaction has succeeded for
        the tracker's grace period.
        """
        try:
            self._executor.read(self._map.register(HEARTBEAT_REGISTER))
        except TransportError:
            responsive = self._tracker.is_responsive()
            if not responsive:
                logger.warning("Device unresponsive for %.0fs", self._tracker.seconds_since_success())
            return responsive
        return True

    def explain(self, name: str) -> dict[str, Any]:
        """Return register, encoding and Modbus function for a property (for debugging)."""
        return explain_property(self._map.resolve(name)).to_dict()

    def poll_iter(
        self,
        names: list[str],
        interval_s: float,
    ) -> Iterator[dict[str, Value]]:
        """Yield read_many(names) every interval_s seconds indefinitely."""
        while True:
            yield self.read_many(names)
            time.sleep(interval_s)

    def __getitem__(self, name: str) -> Value:
        return self.get(name)

    def __setitem__(self, name: str, value: Value) -> None:
        self.set(name, value)

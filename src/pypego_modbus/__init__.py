"""pypego-modbus: Pego ECP cold-store controller properties over Modbus via pymodbus."""

__version__ = "0.1.0"

from .bitfield import encode_write_intent, read_flag
from .client import DeviceProperty, PegoClient, explain_property
from .codec import apply_scale, decode_signed, unapply_scale
from .errors import (
    EncodingError,
    InvalidPropertyError,
    NoDataError,
    PegoModbusError,
    ReadOnlyPropertyError,
    RequestFailedError,
    TransportError,
    UnknownPropertyError,
)
from .executor import TransactionExecutor
from .normalize import normalize_name
from .registers import RegisterMap, get_default_register_map
from .tracker import ResponsivenessTracker
from .transport import PymodbusTransport
from .types import AddressSpace, Byte, DeviceModel, ExplainInfo, PropertyDef, PropertyKind, RegisterDescriptor

__all__ = [
    "__version__",
    "PegoClient",
    "DeviceProperty",
    "explain_property",
    "EncodingError",
    "InvalidPropertyError",
    "NoDataError",
    "PegoModbusError",
    "ReadOnlyPropertyError",
    "RequestFailedError",
    "TransportError",
    "UnknownPropertyError",
    "TransactionExecutor",
    "ResponsivenessTracker",
    "PymodbusTransport",
    "normalize_name",
    "RegisterMap",
    "get_default_register_map",
    "decode_signed",
    "apply_scale",
    "unapply_scale",
    "read_flag",
    "encode_write_intent",
    "AddressSpace",
    "Byte",
    "DeviceModel",
    "ExplainInfo",
    "PropertyDef",
    "PropertyKind",
    "RegisterDescriptor",
]

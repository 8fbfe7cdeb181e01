"""Core data model: address spaces, device models, RegisterDescriptor, PropertyDef and ExplainInfo."""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction


class AddressSpace(str, Enum):
    """Modbus tables used for pymodbus dispatch."""

    COIL = "coil"
    DISCRETE_INPUT = "discrete_input"
    INPUT_REGISTER = "input_register"
    HOLDING_REGISTER = "holding_register"


class DeviceModel(str, Enum):
    """Supported Pego controller variants."""

    ECP_BASE = "ecp_base"
    ECP_202 = "ecp_202"


class Byte(str, Enum):
    """Byte of a 16-bit status word."""

    LOW = "low"
    HIGH = "high"


class PropertyKind(str, Enum):
    """How a property is derived from its register."""

    SCALED = "scaled"
    RAW = "raw"
    SWITCH = "switch"
    STATUS_FLAG = "status_flag"
    COMMAND_FLAG = "command_flag"
    ANY_FLAG = "any_flag"


FLAG_KINDS = frozenset({PropertyKind.STATUS_FLAG, PropertyKind.COMMAND_FLAG})


@dataclass(frozen=True)
class RegisterDescriptor:
    """One device register: where it lives and how its 16-bit value is encoded."""

    name: str
    address_space: AddressSpace
    address: int
    signed: bool = False
    scale: Fraction = Fraction(1)

    def __post_init__(self) -> None:
        if not 0 <= self.address <= 0xFFFF:
            raise ValueError(f"address must be 0..65535, got {self.address}")
        if self.scale == 0:
            raise ValueError(f"scale must be non-zero for register {self.name!r}")


@dataclass(frozen=True)
class PropertyDef:
    """Named device property bound to a register and decoded according to its kind."""

    name: str
    kind: PropertyKind
    register: RegisterDescriptor
    byte: Byte | None = None
    bit: int | None = None
    any_of: tuple[str, ...] = ()
    writable: bool = False
    code: str | None = None
    unit: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.kind in FLAG_KINDS:
            if self.byte is None or self.bit is None:
                raise ValueError(f"{self.kind.value} property {self.name!r} needs byte and bit")
            if not 0 <= self.bit <= 7:
                raise ValueError(f"bit must be 0..7, got {self.bit}")
        if self.kind == PropertyKind.ANY_FLAG and not self.any_of:
            raise ValueError(f"any_flag property {self.name!r} needs any_of")
        if self.kind == PropertyKind.COMMAND_FLAG and not self.writable:
            raise ValueError(f"command_flag property {self.name!r} must be writable")
        if self.kind in (PropertyKind.STATUS_FLAG, PropertyKind.ANY_FLAG) and self.writable:
            raise ValueError(f"{self.kind.value} property {self.name!r} cannot be writable")


@dataclass(frozen=True)
class ExplainInfo:
    """Result of client.explain(name): resolved register and decoding for a property."""

    name: str
    kind: PropertyKind
    code: str | None
    register: str
    address_space: AddressSpace
    address: int
    signed: bool
    scale: Fraction
    byte: Byte | None
    bit: int | None
    writable: bool
    function_used: str

    def to_dict(self) -> dict:
        """Plain, JSON-ready form (enums as values, scale as a fraction string)."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "code": self.code,
            "register": self.register,
            "address_space": self.address_space.value,
            "address": self.address,
            "signed": self.signed,
            "scale": str(self.scale),
            "byte": self.byte.value if self.byte is not None else None,
            "bit": self.bit,
            "writable": self.writable,
            "function_used": self.function_used,
        }

"""RegisterMap: load the packaged register table via importlib.resources, filter by device model, O(1) lookup."""

import json
import logging
from fractions import Fraction
from importlib import resources
from typing import Any, Iterator

from .errors import UnknownPropertyError
from .normalize import normalize_name
from .types import AddressSpace, Byte, DeviceModel, PropertyDef, PropertyKind, RegisterDescriptor

logger = logging.getLogger(__name__)

_RESOURCE_PACKAGE = "pypego_modbus.data"
_RESOURCE_NAME = "pego_registers.json"

HEARTBEAT_REGISTER = "device_status"


def _parse_register(raw: dict[str, Any]) -> RegisterDescriptor:
    """Build a RegisterDescriptor from a JSON entry (name, address_space, address, signed, scale)."""
    name = raw["name"]
    space_str = raw.get("address_space", AddressSpace.HOLDING_REGISTER.value)
    try:
        space = AddressSpace(space_str)
    except ValueError:
        raise ValueError(f"Unknown address space {space_str!r} for register {name!r}")
    # Scale is stored as a decimal string so 0.1 stays exact
    scale = Fraction(str(raw.get("scale", "1")))
    return RegisterDescriptor(
        name=name,
        address_space=space,
        address=int(raw["address"]),
        signed=bool(raw.get("signed", False)),
        scale=scale,
    )


def _parse_property(raw: dict[str, Any], registers: dict[str, RegisterDescriptor]) -> PropertyDef:
    """Build a PropertyDef from a JSON entry, resolving its register by name."""
    name = raw["name"]
    try:
        kind = PropertyKind(raw["kind"])
    except ValueError:
        raise ValueError(f"Unknown kind {raw['kind']!r} for property {name!r}")
    reg_name = raw["register"]
    if reg_name not in registers:
        raise ValueError(f"Property {name!r} refers to unknown register {reg_name!r}")
    byte = Byte(raw["byte"]) if raw.get("byte") is not None else None
    bit = int(raw["bit"]) if raw.get("bit") is not None else None
    return PropertyDef(
        name=name,
        kind=kind,
        register=registers[reg_name],
        byte=byte,
        bit=bit,
        any_of=tuple(raw.get("any_of", ())),
        writable=bool(raw.get("writable", False)),
        code=raw.get("code"),
        unit=raw.get("unit"),
        description=raw.get("description"),
    )


def _applies_to(raw: dict[str, Any], model: DeviceModel) -> bool:
    models = raw.get("models")
    if models is None:
        return True
    return model.value in models


class RegisterMap:
    """
    In-memory map of property names to PropertyDef for one device model.
    Loaded from the packaged JSON table, or from `map_override` (a dict with
    "registers" and "properties" lists, same layout as the packaged file).
    """

    def __init__(
        self,
        model: DeviceModel | str = DeviceModel.ECP_202,
        map_override: dict[str, Any] | None = None,
    ) -> None:
        self._model = DeviceModel(model.lower() if isinstance(model, str) else model)
        self._registers: dict[str, RegisterDescriptor] = {}
        self._by_name: dict[str, PropertyDef] = {}
        self._by_code: dict[str, str] = {}

        if map_override is not None:
            data = map_override
            source = "override"
        else:
            try:
                with resources.files(_RESOURCE_PACKAGE).joinpath(_RESOURCE_NAME).open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except FileNotFoundError:
                raise FileNotFoundError(f"Register table not found: {_RESOURCE_PACKAGE}/{_RESOURCE_NAME}") from None
            source = _RESOURCE_NAME

        for entry in data.get("registers", []):
            descriptor = _parse_register(entry)
            if descriptor.name in self._registers:
                raise ValueError(f"Duplicate register in map: {descriptor.name}")
            self._registers[descriptor.name] = descriptor

        for entry in data.get("properties", []):
            if not _applies_to(entry, self._model):
                continue
            prop = _parse_property(entry, self._registers)
            if prop.name in self._by_name:
                raise ValueError(f"Duplicate property in map: {prop.name}")
            self._by_name[prop.name] = prop
            if prop.code:
                code = prop.code.lower()
                if code in self._by_code:
                    raise ValueError(f"Duplicate device code in map: {prop.code}")
                self._by_code[code] = prop.name

        for prop in self._by_name.values():
            for member in prop.any_of:
                other = self._by_name.get(member)
                if other is None or other.register != prop.register:
                    raise ValueError(f"Property {prop.name!r}: {member!r} is not a flag of {prop.register.name!r}")

        logger.debug(
            "RegisterMap loaded from %s for %s: %d registers, %d properties",
            source,
            self._model.value,
            len(self._registers),
            len(self._by_name),
        )

    def resolve(self, name: str) -> PropertyDef:
        """
        Return the PropertyDef for a property name or a device parameter code
        (e.g. "r0", "HSE"). Raises InvalidPropertyError / UnknownPropertyError.
        """
        code_name = self._by_code.get(name.strip().lower())
        if code_name is not None:
            return self._by_name[code_name]
        return self.lookup(normalize_name(name))

    def lookup(self, name: str) -> PropertyDef:
        """Return PropertyDef for an already normalized name; raise UnknownPropertyError if absent."""
        if name not in self._by_name:
            raise UnknownPropertyError(name, f"Unknown property for {self._model.value}: {name!r}")
        return self._by_name[name]

    def register(self, name: str) -> RegisterDescriptor:
        """Return the RegisterDescriptor with the given name."""
        return self._registers[name]

    def names(self) -> list[str]:
        return list(self._by_name)

    def __iter__(self) -> Iterator[PropertyDef]:
        return iter(self._by_name.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    @property
    def model(self) -> DeviceModel:
        return self._model


def get_default_register_map(model: DeviceModel | str = DeviceModel.ECP_202) -> RegisterMap:
    """Load and return the packaged RegisterMap for the given device model (default ecp_202)."""
    return RegisterMap(model=model)

"""Exceptions for pypego-modbus: property lookup, value encoding and Modbus transport errors."""


class PegoModbusError(Exception):
    """Base exception for pypego-modbus."""

    pass


class InvalidPropertyError(PegoModbusError):
    """Raised when a property name is malformed (syntax validation failed)."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._msg = message or f"Invalid property name: {name!r}"
        super().__init__(self._msg)


class UnknownPropertyError(PegoModbusError):
    """Raised when a property name is well-formed but not available for the device model."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._msg = message or f"Unknown property: {name!r}"
        super().__init__(self._msg)


class ReadOnlyPropertyError(PegoModbusError):
    """Raised when writing a property that the device only reports."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._msg = message or f"Property is read-only: {name!r}"
        super().__init__(self._msg)


class EncodingError(PegoModbusError, ValueError):
    """Raised when a value cannot be represented in a 16-bit register."""

    def __init__(self, value: float, message: str | None = None) -> None:
        self.value = value
        super().__init__(message or f"Value out of 16-bit range: {value!r}")


class TransportError(PegoModbusError):
    """Raised when a Modbus transaction fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        address: int | None = None,
        address_space: str | None = None,
        property_name: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.address = address
        self.address_space = address_space
        self.property_name = property_name
        self.cause = cause
        super().__init__(message)


class RequestFailedError(TransportError):
    """The transport rejected the request or the device answered with an exception."""


class NoDataError(TransportError):
    """The transport accepted the request but returned no values."""

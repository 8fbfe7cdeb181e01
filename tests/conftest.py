"""Shared fixtures: an in-memory transport standing in for the RS-485 bus."""

import pytest

from pypego_modbus.errors import RequestFailedError
from pypego_modbus.types import AddressSpace


class FakeTransport:
    """Holds register words per (address_space, address); records every request."""

    def __init__(self) -> None:
        self.words: dict[tuple[AddressSpace, int], int] = {}
        self.reads: list[tuple[int, AddressSpace, int, int]] = []
        self.writes: list[tuple[int, AddressSpace, int, int]] = []
        self.fail = False
        self.closed = False

    def set_word(self, address: int, word: int, space: AddressSpace = AddressSpace.HOLDING_REGISTER) -> None:
        self.words[(space, address)] = word

    def request_read(self, peripheral_id: int, address_space: AddressSpace, address: int, count: int = 1) -> list[int]:
        self.reads.append((peripheral_id, address_space, address, count))
        if self.fail:
            raise RequestFailedError("bus timeout", address=address, address_space=address_space.value)
        key = (address_space, address)
        return [self.words[key]] if key in self.words else []

    def request_write(self, peripheral_id: int, address_space: AddressSpace, address: int, value: int) -> None:
        self.writes.append((peripheral_id, address_space, address, value))
        if self.fail:
            raise RequestFailedError("bus timeout", address=address, address_space=address_space.value)
        self.words[(address_space, address)] = value

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

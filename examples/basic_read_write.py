#!/usr/bin/env python3
"""Example: connect to a Pego ECP 202 over RS-485 and read/write a few properties."""

import sys

from pypego_modbus import PegoClient
from pypego_modbus.errors import EncodingError, TransportError, UnknownPropertyError


def main() -> None:
    port = "/dev/ttyUSB0"  # change to your RS-485 adapter
    unit_id = 1

    try:
        with PegoClient(port=port, unit_id=unit_id) as pego:
            # Analog input (scaled, signed)
            print(f"ambient_temperature = {pego.get('ambient_temperature')} degC")

            # Parameter by device code
            print(f"r0 (temperature_differential) = {pego.get('r0')} degC")

            # Status flags; one request for the whole output status word
            print(pego.read_many(["compressor_relay_status", "defrost_relay_status", "fans_relay_status"]))

            # Typed handle
            set_point = pego.handle("temperature_set_point")
            print(f"set point = {set_point.get()} degC")
            # set_point.set(2.5)

            # Command (device status write mask); uncomment to put the device in stand-by
            # pego.set("device_stand_by_status", True)

            print(f"explain(HSE): {pego.explain('HSE')}")
            print(f"responsive: {pego.is_responsive()}")
    except UnknownPropertyError as e:
        print(f"Unknown property: {e}", file=sys.stderr)
        sys.exit(1)
    except EncodingError as e:
        print(f"Value not representable: {e}", file=sys.stderr)
        sys.exit(1)
    except TransportError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

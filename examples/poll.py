#!/usr/bin/env python3
"""Example: poll temperatures and alarms on an interval using poll_iter; graceful shutdown on Ctrl+C."""

import sys

from pypego_modbus import PegoClient
from pypego_modbus.errors import TransportError, UnknownPropertyError


def main() -> None:
    port = "/dev/ttyUSB0"  # change to your RS-485 adapter
    unit_id = 1
    names = ["ambient_temperature", "evaporator_temperature", "temperature_alarm_status", "open_door_alarm_status"]
    interval_s = 10.0

    try:
        with PegoClient(port=port, unit_id=unit_id) as pego:
            print(f"Polling {names} every {interval_s}s (Ctrl+C to stop)...")
            for snapshot in pego.poll_iter(names, interval_s):
                print(snapshot)
    except KeyboardInterrupt:
        print("\nStopped.")
    except UnknownPropertyError as e:
        print(f"Unknown property: {e}", file=sys.stderr)
        sys.exit(1)
    except TransportError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

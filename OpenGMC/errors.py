"""Fatal conditions raised while talking to a GMC device.

Each class carries a stable ``exit_code`` so callers can tell an absent
device (link exhausted) from a confused one (identity, date) or a corrupt
one (battery reading) without parsing messages.
"""

from typing import Optional


class GMCError(Exception):
    """Base class for unrecoverable device errors."""

    exit_code = 1


class LinkExhaustedError(GMCError):
    """A command did not complete within the retry budget."""

    exit_code = 1

    def __init__(self, command: str, received: bytes = b"", expected: int = 0):
        self.command = command
        self.received = bytes(received)
        self.expected = expected
        super().__init__(
            f"timeout error on {command!r}, only read "
            f"{len(self.received)}/{expected} bytes"
        )


class DateSyncError(GMCError):
    """The device never returned a usable date/time packet."""

    exit_code = 2

    def __init__(self, attempts: int, last: Optional[bytes] = None):
        self.attempts = attempts
        self.last = last
        super().__init__(f"cannot get device date/time after {attempts} attempts")


class DeviceIdentityError(GMCError):
    """The version string does not identify a supported counter."""

    exit_code = 5

    def __init__(self, version: bytes):
        self.version = bytes(version)
        super().__init__(
            f"read error; reboot device and restart - {self.version.hex(' ')}"
        )


class BatteryRangeError(GMCError):
    """The battery reading is outside the plausible range."""

    exit_code = 6

    def __init__(self, decivolts: int):
        self.decivolts = decivolts
        super().__init__(
            f"battery voltage communication error ({decivolts:02x}); "
            "reboot device and restart"
        )

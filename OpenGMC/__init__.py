"""OpenGMC: Minimal utilities for GMC Geiger counter logs."""

from .find import find_ports
from .download import download
from .gmc import GMC
from .link import DeviceLink
from .memory import MemoryReader
from .decode import BufferDecoder, Event, decode_buffer
from .log import DecodedLog, assemble
from .device import GMCDevice
from .errors import (
    BatteryRangeError,
    DateSyncError,
    DeviceIdentityError,
    GMCError,
    LinkExhaustedError,
)

__version__ = "0.1.0"

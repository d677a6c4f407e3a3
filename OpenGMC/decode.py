"""
GMC Flash Log Decoder
============================================

Turns the raw 64 KiB circular log of a GMC counter into timestamped CPS
readings.

Buffer Structure:
-----------------
The device writes one byte per second (the CPS count for that second) and
periodically interleaves a timestamp packet that anchors the running count
to wall-clock time:

  55 AA xx YY MM DD hh mm ss xx xx
  │  │  │  └─ date: year-2000, month, day, hour, minute, second
  │  │  └─ unused
  │  └─ marker
  └─ sync

  - Between packets, each byte is one second later than the previous one.
  - 0xFF is erased flash: it kills the running clock so that unwritten
    memory never produces readings.
  - 0x55 not followed by 0xAA is a (very unlikely) literal reading of 85.
  - Firmware hiccup: a date byte is sometimes written twice. When bytes +3
    and +4 are equal the date window is shifted by one and the packet is one
    byte longer.

Since the log is circular, lookahead past the end wraps to the start of the
buffer. Only offsets inside the buffer are used as scan positions.

Corrupt packets are never fatal: the clock is dropped and the scan resumes
at the next valid sync packet.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


# Protocol constants
SYNC = 0x55
MARKER = 0xAA
ERASED = 0xFF
DATE_OFFSET = 3  # first date byte, relative to the sync byte
DATE_FIELDS = 6
PACKET_SIZE = 11  # sync + marker + unused + 6 date bytes + 2 unused
YEAR_BASE = 2000

ONE_SECOND = timedelta(seconds=1)
_FIELD_NAMES = ("year", "month", "day", "hour", "minute", "second")


class Mode(enum.Enum):
    SEEKING = "seeking"
    TIMED = "timed"


@dataclass(frozen=True)
class Event:
    """One CPS reading."""

    timestamp: datetime
    count: int


@dataclass(frozen=True)
class InvalidTimestamp:
    """Rejected date field: which field and the raw byte found there."""

    field: str
    value: int

    def __str__(self) -> str:
        return f"invalid {self.field} ({self.value:#04x})"


def parse_timestamp(fields: bytes) -> Union[datetime, InvalidTimestamp]:
    """
    Parse six date bytes (year-2000, month, day, hour, minute, second).

    Bytes are signed on the device, so 0x80 and above are rejected outright.

    Returns:
    --------
    datetime on success, InvalidTimestamp naming the first bad field otherwise
    """
    if len(fields) != DATE_FIELDS:
        raise ValueError(f"expected {DATE_FIELDS} date bytes, got {len(fields)}")

    for name, value in zip(_FIELD_NAMES, fields):
        if value >= 0x80:
            return InvalidTimestamp(name, value)

    year, month, day, hour, minute, second = fields
    if not 1 <= month <= 12:
        return InvalidTimestamp("month", month)
    if hour > 23:
        return InvalidTimestamp("hour", hour)
    if minute > 59:
        return InvalidTimestamp("minute", minute)
    if second > 59:
        return InvalidTimestamp("second", second)
    try:
        return datetime(YEAR_BASE + year, month, day, hour, minute, second)
    except ValueError:
        # Only the day can still be out of range for this month
        return InvalidTimestamp("day", day)


class BufferDecoder:
    """
    Single-pass scanner over a captured flash buffer.

    State is ``mode`` (SEEKING until a valid timestamp packet is seen) and
    ``clock``, the timestamp the next reading will get. Both are private to
    the scan; read them afterwards for diagnostics.
    """

    def __init__(self, buffer: bytes):
        if len(buffer) == 0:
            raise ValueError("buffer must not be empty")
        self.buffer = bytes(buffer)
        self.mode = Mode.SEEKING
        self.clock: Optional[datetime] = None
        self.syncs = 0
        self.garbage_packets = 0
        self.invalidations = 0

    def _at(self, offset: int) -> int:
        """Byte at ``offset``, wrapping past the end for lookahead."""
        return self.buffer[offset % len(self.buffer)]

    def _window(self, start: int, length: int) -> bytes:
        return bytes(self._at(start + k) for k in range(length))

    def _invalidate(self) -> None:
        self.mode = Mode.SEEKING
        self.clock = None

    def _emit(self, events: List[Event], count: int) -> None:
        if self.mode is Mode.TIMED:
            events.append(Event(self.clock, count))
            self.clock += ONE_SECOND

    def _read_packet(self, offset: int) -> int:
        """Consume the timestamp packet at ``offset``; return its length."""
        hiccup = self._at(offset + DATE_OFFSET) == self._at(offset + DATE_OFFSET + 1)
        start = offset + DATE_OFFSET + int(hiccup)

        result = parse_timestamp(self._window(start, DATE_FIELDS))
        if isinstance(result, InvalidTimestamp):
            logger.debug("garbage: %s in timestamp at offset %d", result, offset)
            self.garbage_packets += 1
            self._invalidate()
        else:
            logger.debug("timesync %s from offset %d", result, offset)
            self.syncs += 1
            self.mode = Mode.TIMED
            self.clock = result

        return PACKET_SIZE + int(hiccup)

    def decode(self) -> List[Event]:
        """Scan the whole buffer and return readings in scan order."""
        events: List[Event] = []
        size = len(self.buffer)
        i = 0

        while i < size:
            value = self.buffer[i]

            if value == SYNC and self._at(i + 1) == MARKER:
                i += self._read_packet(i)
                continue

            if value == ERASED:
                if self.mode is Mode.TIMED:
                    self.invalidations += 1
                    self._invalidate()
            else:
                # A lone 0x55 is kept as a literal reading of 85
                self._emit(events, value)
            i += 1

        logger.debug(
            "decoded %d events (%d syncs, %d garbage, %d invalidations)",
            len(events),
            self.syncs,
            self.garbage_packets,
            self.invalidations,
        )
        return events


def decode_buffer(buffer: bytes) -> List[Event]:
    """Decode a captured buffer into readings, in scan order."""
    return BufferDecoder(buffer).decode()

"""Command exchange with a GMC counter over an exclusively owned serial channel."""

import logging
import time
from typing import Optional, Union

import serial

from .errors import LinkExhaustedError
from .gmc import GMC
from .utils import as_hex

logger = logging.getLogger(__name__)

TIMEOUT = 0.3  # deadline for a single write or read completion
SETTLE_DELAY = 0.05  # back-to-back commands are sometimes dropped
MAX_ATTEMPTS = 8


class DeviceLink:
    """
    Send framed commands and collect fixed-size answers.

    Each attempt waits ``settle`` seconds, discards stale input, writes the
    command and, when an answer is expected, reads exactly that many bytes.
    Write and read are each bounded by ``timeout``. A timeout or short read
    starts the next attempt; after ``attempts`` failures the call raises
    LinkExhaustedError and nothing is returned.

    Parameters:
    - channel: open serial.Serial (or any object with reset_input_buffer,
      write and read honouring timeout/write_timeout)
    - timeout: per-phase deadline in seconds
    - settle: delay before every attempt
    - attempts: retry budget per command
    """

    def __init__(
        self,
        channel,
        timeout: float = TIMEOUT,
        settle: float = SETTLE_DELAY,
        attempts: int = MAX_ATTEMPTS,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.channel = channel
        self.timeout = timeout
        self.settle = settle
        self.attempts = attempts
        self.channel.timeout = timeout
        self.channel.write_timeout = timeout

    def send(
        self,
        command: Union[str, bytes],
        expected: int = 0,
        args: bytes = b"",
        label: Optional[str] = None,
    ) -> bytes:
        """
        Run one command exchange and return the answer.

        ``command`` is either a mnemonic (framed with GMC.encode_command and
        ``args``) or an already framed byte string, in which case ``label``
        names it in logs and errors.
        """
        if isinstance(command, str):
            frame = GMC.encode_command(command, args)
            label = label or command.upper()
        else:
            frame = bytes(command)
            label = label or frame.decode("ascii", errors="replace")

        for attempt in range(1, self.attempts + 1):
            out = b""
            if self.settle:
                time.sleep(self.settle)
            self.channel.reset_input_buffer()

            logger.debug("%s attempt %d: %s", label, attempt, as_hex(frame))
            try:
                self.channel.write(frame)
            except serial.SerialTimeoutException:
                logger.debug("%s attempt %d: write timeout", label, attempt)
                continue

            if expected <= 0:
                return b""

            out = bytes(self.channel.read(expected) or b"")
            if len(out) != expected:
                logger.debug(
                    "%s attempt %d: read %d/%d bytes",
                    label,
                    attempt,
                    len(out),
                    expected,
                )
                continue

            logger.debug("%s answered %s", label, as_hex(out))
            return out

        logger.warning(
            "timeout error on %r, only read %d/%d bytes", label, len(out), expected
        )
        if out:
            logger.warning(as_hex(out))
        raise LinkExhaustedError(label, out, expected)

    def query(self, name: str) -> bytes:
        """Send a known command with its documented response size."""
        key = name.upper()
        if key not in GMC.RESPONSE_SIZES:
            raise ValueError(f"unknown command {name!r}")
        return self.send(key, GMC.RESPONSE_SIZES[key])

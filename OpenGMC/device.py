"""Device session: identity, battery and clock checks, and full log download."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .decode import BufferDecoder, parse_timestamp
from .errors import BatteryRangeError, DateSyncError, DeviceIdentityError
from .gmc import GMC
from .link import MAX_ATTEMPTS, DeviceLink
from .log import DecodedLog, assemble
from .memory import CHUNK_SIZE, MemoryReader
from .utils import as_hex

logger = logging.getLogger(__name__)

# Year bytes accepted from GETDATETIME (2016..2099)
PLAUSIBLE_YEARS = range(16, 100)


@dataclass
class DownloadResult:
    log: DecodedLog
    raw: bytes
    version: str
    voltage: float
    device_time: datetime
    serial: str
    config: bytes
    syncs: int = 0
    garbage_packets: int = 0


class GMCDevice:
    """High-level queries on top of a DeviceLink."""

    def __init__(self, link: DeviceLink, memsize: int = GMC.MEMSIZE):
        self.link = link
        self.memory = MemoryReader(link, memsize=memsize)

    def get_version(self) -> str:
        ver = self.link.query("GETVER")
        if not ver.startswith(GMC.VERSION_PREFIX):
            raise DeviceIdentityError(ver)
        return ver.decode("ascii", errors="replace").strip("\x00 ")

    def get_voltage(self) -> float:
        """Battery voltage in volts."""
        decivolts = self.link.query("GETVOLT")[0]
        if decivolts not in GMC.VOLTAGE_RANGE:
            raise BatteryRangeError(decivolts)
        return decivolts / 10.0

    def get_datetime(self, attempts: int = MAX_ATTEMPTS, pause: Optional[float] = None) -> datetime:
        """
        Device clock, retried until a well-formed packet arrives.

        A packet is accepted when it ends in 0xAA, its year byte is plausible
        and the six date bytes form a valid date.
        """
        pause = self.link.timeout if pause is None else pause
        dat = None
        for _ in range(attempts):
            dat = self.link.query("GETDATETIME")
            if dat[-1] == 0xAA and dat[0] in PLAUSIBLE_YEARS:
                result = parse_timestamp(dat[:6])
                if isinstance(result, datetime):
                    return result
            logger.debug("invalid date/time packet %s", as_hex(dat))
            if pause:
                time.sleep(pause)
        raise DateSyncError(attempts, dat)

    def get_serial(self) -> str:
        return self.link.query("GETSERIAL").hex()

    def get_config(self) -> bytes:
        return self.link.query("GETCFG")

    def download(
        self,
        chunk_size: int = CHUNK_SIZE,
        progress: Optional[Callable[[int, int], None]] = None,
        verbose: bool = False,
    ) -> DownloadResult:
        """
        Validate the device, read its whole log and decode it.

        Fatal conditions propagate as GMCError subclasses; nothing partial is
        returned.
        """
        version = self.get_version()
        voltage = self.get_voltage()
        self.memory.read_extra_page()
        device_time = self.get_datetime()
        config = self.get_config()
        serial_no = self.get_serial()

        logger.debug("version: %s", version)
        logger.debug("battery: %.1f V", voltage)
        logger.debug("serial#: %s", serial_no)
        logger.debug("date:    %s", device_time)
        logger.debug("config:  %s", as_hex(config[: GMC.CONFIG_USED]))

        if verbose:
            print(f"Connected to {version} (battery {voltage:.1f} V), reading log ...")

        raw = self.memory.read_all(chunk_size=chunk_size, progress=progress)

        decoder = BufferDecoder(raw)
        log = assemble(decoder.decode())

        if verbose:
            print(f"Decoded {len(log)} readings from {decoder.syncs} time syncs.")

        return DownloadResult(
            log=log,
            raw=raw,
            version=version,
            voltage=voltage,
            device_time=device_time,
            serial=serial_no,
            config=config,
            syncs=decoder.syncs,
            garbage_packets=decoder.garbage_packets,
        )

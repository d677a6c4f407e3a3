import sys
import time
from typing import Optional

from .device import DownloadResult, GMCDevice
from .find import DEFAULT_SPEED, open_port
from .link import DeviceLink
from .memory import CHUNK_SIZE
from .utils import save_raw


def _dots(done: int, total: int) -> None:
    sys.stderr.write(".")
    sys.stderr.flush()
    if done >= total:
        sys.stderr.write("\n")


def download(
    port: str,
    speed: int = DEFAULT_SPEED,
    rawfile: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE,
    verbose: bool = True,
) -> DownloadResult:
    """
    Open a GMC counter on ``port``, read its whole log and decode it.

    Parameters
    - port: Serial device path (e.g. /dev/ttyUSB0 or COM3).
    - speed: Baud rate configured on the counter.
    - rawfile: Optional path to save the raw 64k flash buffer.
    - chunk_size: Bytes per flash read command.
    - verbose: Print progress messages.

    Raises a GMCError subclass on any fatal device condition.
    """
    if not port:
        raise ValueError("port must be a non-empty string")
    if speed <= 0:
        raise ValueError("speed must be positive")

    if verbose:
        print(f"Opening {port} at {speed} baud ...")

    with open_port(port, speed) as ser:
        time.sleep(0.1)
        ser.reset_input_buffer()  # discard unrequested data
        device = GMCDevice(DeviceLink(ser))
        result = device.download(
            chunk_size=chunk_size,
            progress=_dots if verbose else None,
            verbose=verbose,
        )

    if rawfile:
        save_raw(result.raw, rawfile)
        if verbose:
            print(f"Saved raw buffer to {rawfile}.")

    return result

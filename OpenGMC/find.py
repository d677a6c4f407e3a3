import serial
from serial.tools import list_ports

from .link import TIMEOUT

DEFAULT_SPEED = 57600

# USB-serial bridges fitted to GMC counters (WCH CH340)
_GMC_VIDS = (0x1A86,)


def find_ports(verbose=True):
    """List serial ports that look like a GMC counter, CH340 bridges first."""
    ports = []
    for p in list_ports.comports():
        desc = f"{p.description or ''} {p.hwid or ''}".lower()
        is_gmc = p.vid in _GMC_VIDS or "ch340" in desc or "1a86" in desc
        ports.append(
            {"device": p.device, "description": p.description or "Serial Port", "gmc": is_gmc}
        )
    ports.sort(key=lambda d: (not d["gmc"], d["device"]))

    if verbose:
        if ports:
            for d in ports:
                mark = "*" if d["gmc"] else " "
                print(f'{mark} {d["device"]} - {d["description"]}')
        else:
            print("No serial ports found. Ensure the counter is plugged in.")

    return ports


def resolve_port(verbose: bool = True) -> str:
    """
    Return the single port that looks like a GMC counter.

    Raises ValueError if zero or several candidates are found.
    """
    candidates = [d for d in find_ports(verbose=verbose) if d["gmc"]]
    if len(candidates) == 0:
        raise ValueError("No GMC counter found. Ensure the device is connected.")
    if len(candidates) > 1:
        raise ValueError("Multiple candidate ports found. Please specify --port to choose one.")

    return candidates[0]["device"]


def open_port(port: str, speed: int = DEFAULT_SPEED, timeout: float = TIMEOUT) -> serial.Serial:
    """Open ``port`` raw 8N1 at ``speed`` with per-call deadlines of ``timeout``."""
    ser = serial.Serial(
        port,
        baudrate=speed,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
        timeout=timeout,
        write_timeout=timeout,
    )
    ser.reset_input_buffer()
    return ser

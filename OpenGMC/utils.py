import logging
import os
import sys
from datetime import datetime
from typing import Optional


def as_hex(data: bytes) -> str:
    """Space separated lowercase hex, e.g. ``55 aa 00``."""
    return bytes(data).hex(" ")


def start_of_today(now: Optional[datetime] = None) -> datetime:
    """
    Midnight of the current local day.

    Parameters:
    -----------
    now : datetime, optional
        Reference time (defaults to the local clock)

    Returns:
    --------
    datetime : naive local midnight, comparable with device timestamps
    """
    now = now or datetime.now()
    return datetime(now.year, now.month, now.day)


def setup_logging(level=logging.INFO) -> None:
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def save_raw(buffer: bytes, outfile: str) -> None:
    """Write a captured flash buffer to disk, creating the directory if needed."""
    outdir = os.path.dirname(os.path.abspath(outfile))
    if outdir and not os.path.exists(outdir):
        os.makedirs(outdir, exist_ok=True)
    with open(outfile, "wb") as f:
        f.write(bytes(buffer))


def load_raw(infile: str) -> bytes:
    with open(infile, "rb") as f:
        return f.read()

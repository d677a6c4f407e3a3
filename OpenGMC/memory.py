"""Chunked reads of the counter's circular log flash."""

import logging
from typing import Callable, Optional

from .gmc import GMC
from .link import DeviceLink

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256


class MemoryReader:
    """Pull flash regions through a DeviceLink."""

    def __init__(self, link: DeviceLink, memsize: int = GMC.MEMSIZE):
        self.link = link
        self.memsize = memsize
        self.primed = False

    def read_region(self, start: int, length: int) -> bytes:
        frame = GMC.encode_spir(start, length)
        return self.link.send(frame, length, label=f"SPIR {start:#08x}+{length}")

    def read_extra_page(self, length: int = GMC.EXTRAPAGE) -> None:
        """
        Throwaway read past the end of the log.

        Without it the first real SPIR read may return stale data.
        """
        self.read_region(self.memsize, length)
        self.primed = True

    def read_all(
        self,
        chunk_size: int = CHUNK_SIZE,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> bytes:
        """
        Read the whole buffer, offsets 0..memsize-1, in order.

        Parameters:
        -----------
        chunk_size : int
            Bytes per SPIR command (1..4096)
        progress : callable, optional
            Called as ``progress(bytes_done, memsize)`` after every chunk

        Returns:
        --------
        bytes : exactly ``memsize`` bytes
        """
        if not 1 <= chunk_size <= GMC.MAX_CHUNK:
            raise ValueError(f"chunk_size must be between 1 and {GMC.MAX_CHUNK}")
        if not self.primed:
            self.read_extra_page()

        chunks = []
        addr = 0
        while addr < self.memsize:
            step = min(chunk_size, self.memsize - addr)
            chunks.append(self.read_region(addr, step))
            addr += step
            if progress is not None:
                progress(addr, self.memsize)

        logger.debug("read %d bytes in %d chunks", addr, len(chunks))
        return b"".join(chunks)

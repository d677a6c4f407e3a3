"""Constants and command framing for GMC Geiger counters."""

from typing import ClassVar


class GMC:
    """Constants and helpers shared across GMC interactions."""

    MEMSIZE: ClassVar[int] = 65536  # GMC-300E+ only has 64k of log flash
    EXTRAPAGE: ClassVar[int] = 1376  # unmapped bytes past the end of the log
    MAX_CHUNK: ClassVar[int] = 4096

    VERSION_PREFIX: ClassVar[bytes] = b"GMC-3"
    VOLTAGE_RANGE: ClassVar[range] = range(30, 46)  # decivolts, 3.7V cell
    CONFIG_USED: ClassVar[int] = 72

    # Expected response length per command
    RESPONSE_SIZES: ClassVar[dict[str, int]] = {
        "GETVER": 14,
        "GETVOLT": 1,
        "GETDATETIME": 7,
        "GETSERIAL": 7,
        "GETCFG": 256,
    }

    @staticmethod
    def encode_command(name: str, args: bytes = b"") -> bytes:
        """Frame a command as ``<NAME>>`` with binary arguments appended verbatim."""
        if not isinstance(name, str) or not name:
            raise ValueError("command name must be a non-empty string")
        try:
            mnemonic = name.upper().encode("ascii")
        except UnicodeEncodeError as exc:
            raise ValueError("command name must be ASCII") from exc
        return b"<" + mnemonic + bytes(args) + b">>"

    @staticmethod
    def encode_spir(start: int, length: int) -> bytes:
        """Encode a flash read: 24-bit big-endian offset, 16-bit big-endian length."""
        if not 0 <= start < 1 << 24:
            raise ValueError("start offset must fit in 24 bits")
        if not 1 <= length <= GMC.MAX_CHUNK:
            raise ValueError(f"length must be between 1 and {GMC.MAX_CHUNK}")
        return GMC.encode_command(
            "SPIR", start.to_bytes(3, "big") + length.to_bytes(2, "big")
        )

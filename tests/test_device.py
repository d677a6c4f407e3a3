"""
Unit tests for the device session and full download pipeline.

FakeGMC emulates the counter's command set on top of an in-memory flash
image, so the whole path DeviceLink -> MemoryReader -> BufferDecoder ->
assemble runs without hardware.
"""

import importlib
import os
import tempfile
import unittest
from datetime import datetime
from unittest.mock import patch

from OpenGMC.device import GMCDevice
from OpenGMC.errors import (
    BatteryRangeError,
    DateSyncError,
    DeviceIdentityError,
    LinkExhaustedError,
)
from OpenGMC.gmc import GMC
from OpenGMC.link import DeviceLink


class FakeGMC:
    def __init__(self, flash: bytes = b"", **responses):
        self.flash = flash
        self.responses = {
            "GETVER": b"GMC-300Re 4.54",
            "GETVOLT": bytes([42]),
            "GETDATETIME": bytes([24, 1, 2, 3, 4, 5, 0xAA]),
            "GETSERIAL": bytes.fromhex("f488aa12345678"),
            "GETCFG": bytes(range(256)),
        }
        self.responses.update(responses)
        self.writes = []
        self.pending = b""
        self.timeout = None
        self.write_timeout = None

    def reset_input_buffer(self):
        self.pending = b""

    def write(self, frame):
        frame = bytes(frame)
        self.writes.append(frame)
        if frame.startswith(b"<SPIR"):
            start = int.from_bytes(frame[5:8], "big")
            length = int.from_bytes(frame[8:10], "big")
            data = self.flash[start : start + length]
            self.pending = data + bytes(length - len(data))
        else:
            answer = self.responses.get(frame[1:-2].decode("ascii"), b"")
            if isinstance(answer, list):
                answer = answer.pop(0) if len(answer) > 1 else answer[0]
            self.pending = answer
        return len(frame)

    def read(self, size):
        out, self.pending = self.pending[:size], self.pending[size:]
        return out


def packet(year, month, day, hour=0, minute=0, second=0) -> bytes:
    return bytes([0x55, 0xAA, 0x00, year, month, day, hour, minute, second, 0x00, 0x00])


def make_device(channel, memsize=512):
    return GMCDevice(DeviceLink(channel, settle=0), memsize=memsize)


class SessionTests(unittest.TestCase):
    def test_version(self):
        self.assertEqual(make_device(FakeGMC()).get_version(), "GMC-300Re 4.54")

    def test_identity_mismatch(self):
        device = make_device(FakeGMC(GETVER=b"GQ-RFC1201 1.0"))
        with self.assertRaises(DeviceIdentityError) as ctx:
            device.get_version()
        self.assertEqual(ctx.exception.exit_code, 5)

    def test_voltage(self):
        self.assertAlmostEqual(make_device(FakeGMC()).get_voltage(), 4.2)

    def test_voltage_out_of_range(self):
        for decivolts in (29, 46, 0x90):
            with self.subTest(decivolts=decivolts):
                device = make_device(FakeGMC(GETVOLT=bytes([decivolts])))
                with self.assertRaises(BatteryRangeError) as ctx:
                    device.get_voltage()
                self.assertEqual(ctx.exception.exit_code, 6)

    def test_datetime(self):
        self.assertEqual(make_device(FakeGMC()).get_datetime(), datetime(2024, 1, 2, 3, 4, 5))

    def test_datetime_retries_bad_packets(self):
        channel = FakeGMC(
            GETDATETIME=[
                bytes([24, 1, 2, 3, 4, 5, 0x00]),  # missing terminator
                bytes([5, 1, 2, 3, 4, 5, 0xAA]),  # implausible year
                bytes([24, 13, 2, 3, 4, 5, 0xAA]),  # invalid month
                bytes([26, 10, 19, 9, 0, 0, 0xAA]),
            ]
        )
        device = make_device(channel)
        self.assertEqual(device.get_datetime(pause=0), datetime(2026, 10, 19, 9, 0, 0))
        self.assertEqual(channel.writes.count(b"<GETDATETIME>>"), 4)

    def test_datetime_gives_up(self):
        channel = FakeGMC(GETDATETIME=bytes([0, 0, 0, 0, 0, 0, 0]))
        with self.assertRaises(DateSyncError) as ctx:
            make_device(channel).get_datetime(attempts=3, pause=0)
        self.assertEqual(ctx.exception.exit_code, 2)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(channel.writes.count(b"<GETDATETIME>>"), 3)

    def test_serial_and_config(self):
        device = make_device(FakeGMC())
        self.assertEqual(device.get_serial(), "f488aa12345678")
        self.assertEqual(len(device.get_config()), 256)

    def test_silent_device(self):
        device = make_device(FakeGMC(GETVER=b""))
        with self.assertRaises(LinkExhaustedError):
            device.get_version()


class DownloadTests(unittest.TestCase):
    def setUp(self):
        body = packet(24, 1, 1, 10) + bytes([1, 2, 3]) + packet(24, 1, 1, 10) + bytes([9])
        self.flash = body + bytes([0xFF]) * (512 - len(body))

    def test_full_pipeline(self):
        channel = FakeGMC(self.flash)
        result = make_device(channel).download(chunk_size=256)

        self.assertEqual(result.raw, self.flash)
        self.assertEqual(result.version, "GMC-300Re 4.54")
        self.assertEqual(result.device_time, datetime(2024, 1, 2, 3, 4, 5))
        self.assertEqual(result.syncs, 2)
        self.assertEqual(
            [(e.timestamp.second, e.count) for e in result.log],
            [(0, 1), (1, 2), (2, 3)],
        )

    def test_extra_page_precedes_log_reads(self):
        channel = FakeGMC(self.flash)
        make_device(channel).download(chunk_size=256)
        spir = [w for w in channel.writes if w.startswith(b"<SPIR")]
        starts = [int.from_bytes(w[5:8], "big") for w in spir]
        self.assertEqual(starts, [512, 0, 256])

    def test_command_order(self):
        channel = FakeGMC(self.flash)
        make_device(channel).download()
        names = [w[1:5] for w in channel.writes]
        self.assertEqual(
            names[:6], [b"GETV", b"GETV", b"SPIR", b"GETD", b"GETC", b"GETS"]
        )

    def test_fatal_condition_returns_nothing(self):
        channel = FakeGMC(self.flash, GETVOLT=bytes([99]))
        with self.assertRaises(BatteryRangeError):
            make_device(channel).download()
        self.assertFalse(any(w.startswith(b"<SPIR") for w in channel.writes))


class PortFake(FakeGMC):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class DownloadFunctionTests(unittest.TestCase):
    # OpenGMC.download is shadowed by the function of the same name in the package namespace
    download_module = importlib.import_module("OpenGMC.download")

    def test_download_saves_raw_buffer(self):
        body = packet(24, 1, 1) + bytes([4, 5])
        flash = body + bytes([0xFF]) * (GMC.MEMSIZE - len(body))

        with tempfile.TemporaryDirectory() as tmp:
            rawfile = os.path.join(tmp, "dump", "gmc.bin")
            with patch.object(self.download_module, "open_port", return_value=PortFake(flash)), patch(
                "time.sleep"
            ):
                result = self.download_module.download("/dev/ttyUSB0", rawfile=rawfile, verbose=False)

            with open(rawfile, "rb") as f:
                self.assertEqual(f.read(), flash)
        self.assertEqual([e.count for e in result.log], [4, 5])

    def test_download_validates_arguments(self):
        with self.assertRaises(ValueError):
            self.download_module.download("")
        with self.assertRaises(ValueError):
            self.download_module.download("/dev/ttyUSB0", speed=0)


if __name__ == "__main__":
    unittest.main()

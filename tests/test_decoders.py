import bz2
import gzip
import unittest
from io import BytesIO
from unittest import mock

from kaito import (
    DecoderInitError,
    DecompressionError,
    DecoderUnavailableError,
    ForcedNativeUnavailableError,
    Options,
    SourceError,
)
from kaito import decoders
from kaito.decoders import DECODERS, select
from kaito.replay import ReplayReader
from kaito.sniffer import Codec


def missing_command(codec):
    return mock.patch.dict(DECODERS, {codec: DECODERS[codec]._replace(command=("kaito-no-such-decompressor", "-cd"))})


class TestReplayReader(unittest.TestCase):
    def test_prefix_first(self):
        reader = ReplayReader(b"abc", BytesIO(b"def"))
        self.assertEqual(reader.read(2), b"ab")
        self.assertEqual(reader.read(5), b"c")
        self.assertEqual(reader.read(5), b"def")
        self.assertEqual(reader.read(5), b"")

    def test_read_all(self):
        self.assertEqual(ReplayReader(b"abc", BytesIO(b"def")).read(), b"abcdef")

    def test_readinto(self):
        reader = ReplayReader(b"ab", BytesIO(b"cd"))
        buf = bytearray(4)
        self.assertEqual(reader.readinto(buf), 2)
        self.assertEqual(buf[:2], b"ab")

    def test_source_error(self):
        source = mock.Mock()
        source.read.side_effect = ValueError("I/O operation on closed file.")
        reader = ReplayReader(b"", source)
        with self.assertRaises(SourceError):
            reader.read(4)


class TestSelect(unittest.TestCase):
    def test_plain(self):
        stream = select(Codec.PLAIN, b"Hel", BytesIO(b"lo"), Options())
        self.assertIsInstance(stream, ReplayReader)
        self.assertEqual(stream.read(), b"Hello")

    def test_undetermined_is_rejected(self):
        with self.assertRaises(ValueError):
            select(Codec.UNDETERMINED, b"", BytesIO(), Options())

    def test_spawn_failure_falls_back(self):
        compressed = gzip.compress(b"Hello")
        with missing_command(Codec.GZIP):
            stream = select(Codec.GZIP, compressed[:2], BytesIO(compressed[2:]), Options())
        self.assertIsInstance(stream, decoders.NativeReader)
        self.assertIsInstance(stream.stream, gzip.GzipFile)
        self.assertEqual(stream.read(), b"Hello")

    def test_force_native_skips_spawn(self):
        compressed = bz2.compress(b"Hello")
        with mock.patch.object(decoders, "spawn") as spawn:
            stream = select(Codec.BZIP2, compressed[:3], BytesIO(compressed[3:]), Options(force_native=True))
        spawn.assert_not_called()
        self.assertEqual(stream.read(), b"Hello")

    def test_forced_native_unavailable(self):
        with mock.patch.dict(DECODERS, {Codec.XZ: DECODERS[Codec.XZ]._replace(native=None)}):
            with self.assertRaises(ForcedNativeUnavailableError):
                select(Codec.XZ, b"\xfd7zXZ\x00", BytesIO(), Options(force_native=True))

    def test_no_decoder_at_all(self):
        entry = DECODERS[Codec.XZ]._replace(command=("kaito-no-such-decompressor",), native=None)
        with mock.patch.dict(DECODERS, {Codec.XZ: entry}):
            with self.assertRaises(DecoderUnavailableError) as cm:
                select(Codec.XZ, b"\xfd7zXZ\x00", BytesIO(), Options())
        self.assertNotIsInstance(cm.exception, ForcedNativeUnavailableError)

    def test_native_bad_header(self):
        with self.assertRaises(DecoderInitError):
            select(Codec.GZIP, b"\x1f\x8b", BytesIO(b"\xff" * 20), Options(force_native=True))

    def test_native_source_error_is_not_decoder_error(self):
        source = mock.Mock()
        source.read.side_effect = OSError("device unplugged")
        with self.assertRaises(SourceError):
            select(Codec.GZIP, b"\x1f\x8b", source, Options(force_native=True))

    def test_native_corruption_after_header(self):
        compressed = gzip.compress(b"Hello")
        stream = select(Codec.GZIP, compressed[:2], BytesIO(compressed[2:-8] + b"\x00" * 8), Options(force_native=True))
        self.assertEqual(stream.read(5), b"Hello")
        with self.assertRaises(DecompressionError) as cm:
            stream.read()
        self.assertIsInstance(cm.exception.__cause__, gzip.BadGzipFile)

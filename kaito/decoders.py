import logging
from typing import Callable, NamedTuple, Optional, Tuple

from . import (
    DecoderInitError,
    DecompressionError,
    DecoderUnavailableError,
    ForcedNativeUnavailableError,
    KaitoError,
    SourceError,
    SpawnError,
)
from .process import spawn
from .replay import ReplayReader
from .sniffer import Codec

try:
    import gzip
    import zlib
except ImportError:
    gzip = None

try:
    import bz2
except ImportError:
    bz2 = None

try:
    import lzma
except ImportError:
    lzma = None

logger = logging.getLogger(__name__)


class Decoder(NamedTuple):
    command: Tuple[str, ...]
    native: Optional[Callable]
    errors: Tuple[type, ...]


def _gzip_native(f):
    return gzip.GzipFile(fileobj=f, mode="rb")


def _bzip2_native(f):
    return bz2.BZ2File(f, mode="rb")


def _xz_native(f):
    return lzma.LZMAFile(f, mode="rb", format=lzma.FORMAT_XZ)


class NativeReader:
    """In-process decoder stream that reports corrupt data as :class:`~kaito.DecompressionError`."""

    def __init__(self, stream, codec: Codec, errors: Tuple[type, ...]):
        self.stream = stream
        self.codec = codec
        self.errors = errors

    def readable(self) -> bool:
        return True

    def readinto(self, buf) -> int:
        try:
            return self.stream.readinto(buf)
        except KaitoError:
            raise
        except self.errors as e:
            raise DecompressionError(f"Invalid {self.codec.value} stream: {e}") from e

    def read(self, size: int = -1) -> bytes:
        try:
            return self.stream.read(size)
        except KaitoError:
            raise
        except self.errors as e:
            raise DecompressionError(f"Invalid {self.codec.value} stream: {e}") from e

    def close(self):
        self.stream.close()


DECODERS = {
    Codec.GZIP: Decoder(
        ("gzip", "-cd"),
        _gzip_native if gzip is not None else None,
        (OSError, EOFError) + ((zlib.error,) if gzip is not None else ()),
    ),
    Codec.BZIP2: Decoder(
        ("bzip2", "-cd"),
        _bzip2_native if bz2 is not None else None,
        (OSError, EOFError),
    ),
    Codec.XZ: Decoder(
        ("xz", "-cd"),
        _xz_native if lzma is not None else None,
        (OSError, EOFError) + ((lzma.LZMAError,) if lzma is not None else ()),
    ),
}


def open_native(codec: Codec, prefix: bytes, source, options):
    """Construct the in-process decoder for ``codec``.

    The first decompressed byte is peeked so a malformed header is reported
    here rather than on a later read.
    """
    decoder = DECODERS[codec]
    if decoder.native is None:
        if options.force_native:
            raise ForcedNativeUnavailableError(f"No in-process {codec.value} decoder is available.")
        raise DecoderUnavailableError(f"{codec.value} could not be started and no in-process decoder is available.")

    stream = decoder.native(ReplayReader(prefix, source))
    try:
        stream.peek(1)
    except SourceError:
        stream.close()
        raise
    except decoder.errors as e:
        stream.close()
        raise DecoderInitError(f"Invalid {codec.value} stream: {e}") from e
    logger.debug("Decoding %s in-process.", codec.value)
    return NativeReader(stream, codec, decoder.errors)


def select(codec: Codec, prefix: bytes, source, options):
    """Materialize the decompression stream for a detected ``codec``.

    External decompressors are preferred unless ``options.force_native`` is
    set; a failure to start one falls back to the in-process decoder once.

    Parameters
    ----------
    codec: Codec
        Sniffed format. ``Codec.PLAIN`` replays the input unmodified.
    prefix: bytes
        Bytes consumed from ``source`` during detection.
    source: file
        Remaining input.
    options: Options

    Returns
    -------
    Readable stream of decompressed bytes.
    """
    if codec is Codec.PLAIN:
        logger.debug("No known format; passing data through.")
        return ReplayReader(prefix, source)
    if codec not in DECODERS:
        raise ValueError(f"Cannot select a decoder for {codec!r}")

    if not options.force_native:
        try:
            return spawn(DECODERS[codec].command, prefix, source, options)
        except SpawnError as e:
            logger.debug("%s; falling back to in-process decoder.", e)

    return open_native(codec, prefix, source, options)

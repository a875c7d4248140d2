import io

# Keep in sync with setup.py.
__version__ = "0.0.0"


class KaitoError(OSError):
    """Base class for all errors raised by kaito."""


class SourceError(KaitoError):
    """Reading the underlying byte source failed."""


class SniffError(SourceError):
    """The source failed while its leading bytes were being inspected.

    ``partial`` holds the bytes that were buffered before the failure, so
    callers that want the raw data can still recover it.
    """

    def __init__(self, message, partial=b""):
        super().__init__(message)
        self.partial = bytes(partial)


class SpawnError(KaitoError):
    """An external decompressor process could not be started."""


class DecoderUnavailableError(KaitoError):
    """No in-process decoder exists for the detected format."""


class ForcedNativeUnavailableError(DecoderUnavailableError):
    """``force_native`` was requested for a format without an in-process decoder."""


class DecoderInitError(KaitoError):
    """The decoder rejected the start of the compressed stream."""


class DecompressionError(KaitoError):
    """The decompressor reported corrupt or truncated data."""


class ProcessTerminationError(KaitoError):
    """A spawned decompressor did not exit cleanly when asked to."""


class StreamFailedError(KaitoError):
    """A read was issued on a stream that has already failed."""


from .options import Options
from .sniffer import MAGIC, Codec, sniff
from .reader import Reader, State


def open(f, mode="rb", options=None, *, encoding=None, errors=None, newline=None, **kwargs):
    """Open a possibly-compressed file or stream for reading.

    Parameters
    ----------
    f: Union[file, str, Path]
        File-like object or path to read (possibly compressed) bytes from.
    mode: str
        ``"rb"`` for a binary :class:`Reader`; ``"r"`` or ``"rt"`` for text.
    options: Optional[Options]
        Detection and decoding options. Keyword arguments override its fields.

    Returns
    -------
    Union[Reader, io.TextIOWrapper]
    """
    if "w" in mode or "a" in mode or "x" in mode or "+" in mode:
        raise ValueError(f"kaito only supports reading, got mode {mode!r}")
    if mode not in ("r", "rb", "br", "rt", "tr"):
        raise ValueError(f"invalid mode: {mode!r}")

    reader = Reader(f, options, **kwargs)
    if "b" in mode:
        if encoding is not None or errors is not None or newline is not None:
            reader.close()
            raise ValueError("binary mode doesn't take text arguments")
        return reader

    return io.TextIOWrapper(io.BufferedReader(reader), encoding=encoding, errors=errors, newline=newline)


def decompress(data: bytes, options=None, **kwargs) -> bytes:
    """Single-call to decompress data of any supported format.

    Parameters
    ----------
    data: bytes
        Possibly-compressed data. Unrecognized data is returned unchanged.

    Returns
    -------
    bytes
        Decompressed data.
    """
    with Reader(io.BytesIO(data), options, **kwargs) as f:
        return f.read()

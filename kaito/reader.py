import io
import logging
from enum import Enum
from typing import Optional

from . import StreamFailedError
from .decoders import select
from .options import Options
from .sniffer import Codec, LookaheadBuffer

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


class State(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"
    ERROR = "error"


class Reader(io.RawIOBase):
    """Transparently decompresses gzip, bzip2 or xz data; passes anything else through.

    The format is sniffed from the first few bytes on the first read.
    Can be used as a context manager to automatically handle file
    opening and closing:

    .. code-block:: python

        with kaito.Reader("data.txt.gz") as f:
            data = f.read()
    """

    def __init__(self, f, options: Optional[Options] = None, **kwargs):
        """
        Parameters
        ----------
        f: Union[file, str, Path]
            File-like object to read possibly-compressed bytes from.
            A path is opened, and closed again with the reader.
        options: Optional[Options]
            Detection and decoding options.
        **kwargs
            Override individual :class:`Options` fields.
        """
        self._source = None
        self._close_source = False
        self._stream = None
        self._state = State.UNINITIALIZED
        self._codec = Codec.UNDETERMINED
        self._error: Optional[BaseException] = None
        self._closed = False

        self.options = Options.from_kwargs(options, **kwargs)

        if not hasattr(f, "read"):  # It's probably a path-like object.
            f = open(str(f), "rb")
            self._close_source = True
        self._source = f

    @property
    def state(self) -> State:
        return self._state

    @property
    def codec(self) -> Codec:
        """Detected format; ``Codec.UNDETERMINED`` until the first read."""
        return self._codec

    @property
    def closed(self) -> bool:
        """``True`` once :meth:`close` has been called."""
        return self._closed

    def readable(self) -> bool:
        return True

    def _initialize(self):
        lookahead = LookaheadBuffer()
        self._codec = lookahead.fill(self._source, self.options)
        self._stream = select(self._codec, lookahead.take(), self._source, self.options)
        self._state = State.READY

    def _fail(self, e: BaseException):
        self._state = State.ERROR
        self._error = e

    def readinto(self, buf) -> int:
        """Decompresses data into provided buffer.

        Parameters
        ----------
        buf: bytearray
            Buffer to decode data into.

        Returns
        -------
        int
            Number of bytes written into buffer. ``0`` means end of input.
        """
        if self._state is State.CLOSED:
            return 0
        if self._state is State.ERROR:
            raise StreamFailedError("Stream is in a failed state.") from self._error
        if not len(buf):
            return 0

        try:
            if self._state is State.UNINITIALIZED:
                self._initialize()
            read_size = self._stream.readinto(buf)
            if not read_size:
                logger.debug("End of %s stream.", self._codec.value)
                self._release()
        except Exception as e:
            self._fail(e)
            raise
        return read_size

    def read(self, size: int = -1) -> bytes:
        """Decompresses data to bytes.

        Parameters
        ----------
        size: int
            Maximum number of bytes to return.
            If a negative value is provided, all data will be returned.
            Defaults to ``-1``.

        Returns
        -------
        bytes
            Decompressed data. Empty once the input is exhausted.
        """
        if size is None or size < 0:
            return self.readall()
        buf = bytearray(size)
        read_size = self.readinto(buf)
        return bytes(buf[:read_size])

    def readall(self) -> bytes:
        out = []
        while True:
            chunk = self.read(_CHUNK_SIZE)
            if not chunk:
                break
            out.append(chunk)
        return b"".join(out)

    def _release(self):
        """Release the decoder and source, then move to ``CLOSED``."""
        stream, self._stream = self._stream, None
        source, self._source = self._source, None
        self._state = State.CLOSED
        try:
            if stream is not None:
                stream.close()
        finally:
            if self._close_source and source is not None:
                source.close()

    def close(self):
        """Release all resources; safe to call repeatedly.

        Raises
        ------
        ProcessTerminationError
            A spawned decompressor had to be killed. The reader is closed
            regardless.
        """
        if self._closed:
            return
        self._closed = True
        if self._state is not State.CLOSED:
            self._release()

    def __repr__(self):
        return f"<{type(self).__name__} codec={self._codec.value} state={self._state.value}>"

import logging
from enum import Enum

from . import SniffError

logger = logging.getLogger(__name__)

# Longest magic number is xz's; nothing past this is ever inspected.
MAX_HEADER_LENGTH = 6


class Codec(Enum):
    UNDETERMINED = "undetermined"
    GZIP = "gzip"
    BZIP2 = "bzip2"
    XZ = "xz"
    PLAIN = "plain"


MAGIC = {
    Codec.GZIP: b"\x1f\x8b",
    Codec.BZIP2: b"BZh",
    Codec.XZ: b"\xfd7zXZ\x00",
}


def sniff(prefix: bytes, exhausted: bool = False, options=None) -> Codec:
    """Decide the format of a stream from its leading bytes.

    Parameters
    ----------
    prefix: bytes
        Leading bytes of the stream read so far.
    exhausted: bool
        The source hit end-of-input before ``prefix`` reached
        :data:`MAX_HEADER_LENGTH` bytes.
    options: Optional[Options]
        Consulted for administratively disabled formats.

    Returns
    -------
    Codec
        ``Codec.UNDETERMINED`` if more bytes are needed, ``Codec.PLAIN`` if
        no known (or enabled) format matches, otherwise the detected codec.
    """
    size = len(prefix)
    if size:
        for codec, magic in MAGIC.items():
            if prefix[0] != magic[0]:
                continue
            if prefix[: len(magic)] != magic[:size]:
                return Codec.PLAIN
            if size < len(magic):
                break
            if options is not None and options.is_disabled(codec):
                return Codec.PLAIN
            return codec
        else:
            return Codec.PLAIN

    if exhausted or size >= MAX_HEADER_LENGTH:
        return Codec.PLAIN
    return Codec.UNDETERMINED


class LookaheadBuffer:
    """Accumulates the leading bytes of a source until its format is known.

    The buffered bytes must be replayed downstream exactly once via
    :meth:`take`.
    """

    def __init__(self, capacity: int = MAX_HEADER_LENGTH):
        self.capacity = capacity
        self.exhausted = False
        self._buffer = bytearray()
        self._taken = False

    def __len__(self):
        return len(self._buffer)

    def fill(self, source, options=None) -> Codec:
        """Read from ``source`` until :func:`sniff` reaches a verdict.

        Short reads are accumulated across calls.

        Raises
        ------
        SniffError
            ``source`` failed for a reason other than end-of-input. The
            exception carries the bytes buffered so far.
        """
        while True:
            codec = sniff(self._buffer, self.exhausted, options)
            if codec is not Codec.UNDETERMINED:
                logger.debug("Sniffed %r from %d leading byte(s).", codec.value, len(self._buffer))
                return codec

            try:
                chunk = source.read(self.capacity - len(self._buffer))
            except Exception as e:
                raise SniffError(f"Failed reading stream header: {e}", partial=self._buffer) from e

            if chunk:
                self._buffer += chunk
            else:
                self.exhausted = True

    def take(self) -> bytes:
        """Hand over the buffered prefix; may only be called once."""
        if self._taken:
            raise RuntimeError("Lookahead buffer was already replayed.")
        self._taken = True
        data = bytes(self._buffer)
        self._buffer = bytearray()
        return data

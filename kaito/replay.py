from . import SourceError


class ReplayReader:
    """Reads ``prefix`` followed by the remainder of ``source``.

    Used both as the passthrough stream and as the input of in-process
    decoders, so bytes consumed while sniffing are never lost. Closing it
    leaves ``source`` open; the owning :class:`~kaito.Reader` handles that.
    """

    def __init__(self, prefix: bytes, source):
        self.prefix = prefix
        self.source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buf) -> int:
        data = self.read(len(buf))
        buf[: len(data)] = data
        return len(data)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data, self.prefix = self.prefix, b""
            return data + self._read_source(-1)

        if self.prefix:
            data = self.prefix[:size]
            self.prefix = self.prefix[size:]
            return data

        return self._read_source(size)

    def _read_source(self, size):
        try:
            data = self.source.read(size)
        except Exception as e:
            raise SourceError(f"Failed reading input: {e}") from e
        return data or b""

    def close(self):
        self.prefix = b""

from dataclasses import dataclass, fields, replace
from typing import Optional

from .sniffer import Codec

DEFAULT_PROCESS_TIMEOUT = 5.0
DEFAULT_CHUNK_SIZE = 1 << 16


@dataclass(frozen=True)
class Options:
    """Immutable detection and decoding configuration.

    Parameters
    ----------
    disable_gzip: bool
        Treat gzip magic bytes as unrecognized data.
    disable_bzip2: bool
        Treat bzip2 magic bytes as unrecognized data.
    disable_xz: bool
        Treat xz magic bytes as unrecognized data.
    force_native: bool
        Never spawn an external decompressor; only use in-process decoders.
    process_timeout: Optional[float]
        Seconds to wait for a terminated decompressor process before killing it.
        ``None`` waits forever.
    chunk_size: int
        Number of bytes copied per step into an external decompressor.
    """

    disable_gzip: bool = False
    disable_bzip2: bool = False
    disable_xz: bool = False
    force_native: bool = False
    process_timeout: Optional[float] = DEFAULT_PROCESS_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.process_timeout is not None and self.process_timeout <= 0:
            raise ValueError(f"process_timeout must be positive, got {self.process_timeout}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @classmethod
    def from_kwargs(cls, options: Optional["Options"] = None, **kwargs) -> "Options":
        """Build options from an optional base value and keyword overrides."""
        names = {field.name for field in fields(cls)}
        unknown = sorted(set(kwargs) - names)
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(unknown)}")
        if options is None:
            return cls(**kwargs)
        return replace(options, **kwargs) if kwargs else options

    def is_disabled(self, codec: Codec) -> bool:
        if codec is Codec.GZIP:
            return self.disable_gzip
        if codec is Codec.BZIP2:
            return self.disable_bzip2
        if codec is Codec.XZ:
            return self.disable_xz
        return False

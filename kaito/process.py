"""Run an external decompressor with a background thread feeding its stdin."""

import logging
import subprocess
import threading
from typing import Optional, Sequence

from . import DecompressionError, ProcessTerminationError, SourceError, SpawnError

logger = logging.getLogger(__name__)

_JOIN_TIMEOUT = 1.0


class _Feeder(threading.Thread):
    """Copies ``prefix`` followed by the rest of ``source`` into ``sink``.

    ``sink`` is closed when the source is exhausted, when the consumer stops,
    or when the source fails. A source failure is kept in :attr:`error` and
    reported by the reading side.
    """

    def __init__(self, prefix: bytes, source, sink, chunk_size: int):
        super().__init__(name="kaito-feeder", daemon=True)
        self.prefix = prefix
        self.source = source
        self.sink = sink
        self.chunk_size = chunk_size
        self.error: Optional[BaseException] = None
        self._stopped = threading.Event()

    def run(self):
        try:
            self._write(self.prefix)
            while not self._stopped.is_set():
                try:
                    chunk = self.source.read(self.chunk_size)
                except Exception as e:
                    if not self._stopped.is_set():
                        self.error = e
                    return
                if not chunk:
                    return
                self._write(chunk)
        except (OSError, ValueError):
            # Process exited or consumer closed the pipe; the reader reports exit status.
            pass
        finally:
            self._close_sink()

    def _write(self, data):
        view = memoryview(data)
        while view and not self._stopped.is_set():
            written = self.sink.write(view)
            view = view[written:]

    def _close_sink(self):
        try:
            self.sink.close()
        except OSError:
            pass

    def stop(self):
        """Make further writes fail fast and end the copy loop."""
        self._stopped.set()
        self._close_sink()


class ProcessReader:
    """Reads the stdout of an external decompressor.

    Use :func:`spawn` to create one.
    """

    def __init__(self, process: subprocess.Popen, feeder: _Feeder, name: str, timeout: Optional[float]):
        self.process = process
        self.name = name
        self.timeout = timeout
        self._feeder = feeder
        self._closed = False

    def _raise_if_feeder_failed(self):
        error = self._feeder.error
        if error is not None:
            raise SourceError(f"Failed reading input for {self.name}: {error}") from error

    def readinto(self, buf) -> int:
        self._raise_if_feeder_failed()
        read_size = self.process.stdout.readinto(buf)
        if read_size or not len(buf):
            return read_size

        # End of output: the process is done with its input too.
        self._feeder.join()
        self._raise_if_feeder_failed()
        retcode = self.process.wait()
        if retcode != 0:
            raise DecompressionError(
                f"{self.name} process returned non-zero exit code {retcode}. "
                "Is the input truncated or corrupt?"
            )
        return 0

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            chunks = []
            while True:
                chunk = self.read(1 << 16)
                if not chunk:
                    return b"".join(chunks)
                chunks.append(chunk)
        buf = bytearray(size)
        read_size = self.readinto(buf)
        return bytes(buf[:read_size])

    def close(self):
        """Stop feeding, terminate the process and reap it.

        Raises
        ------
        ProcessTerminationError
            The process ignored the termination request for ``timeout``
            seconds and had to be killed.
        """
        if self._closed:
            return
        self._closed = True

        self._feeder.stop()
        killed = False
        if self.process.poll() is None:
            logger.debug("Terminating %s (pid %d).", self.name, self.process.pid)
            self.process.terminate()
            try:
                self.process.wait(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                logger.debug("%s did not exit after %ss; killing.", self.name, self.timeout)
                self.process.kill()
                self.process.wait()
                killed = True
        self.process.stdout.close()
        self._feeder.join(_JOIN_TIMEOUT)

        if killed:
            raise ProcessTerminationError(
                f"{self.name} process did not exit within {self.timeout}s of termination and was killed."
            )


def spawn(command: Sequence[str], prefix: bytes, source, options) -> ProcessReader:
    """Start ``command`` and feed it ``prefix`` followed by the rest of ``source``.

    Parameters
    ----------
    command: Sequence[str]
        Executable and arguments. It must read compressed data on stdin and
        write decompressed data on stdout.
    prefix: bytes
        Bytes already consumed from ``source``.
    source: file
        Remaining input.
    options: Options
        Supplies ``chunk_size`` and ``process_timeout``.

    Raises
    ------
    SpawnError
        The executable is missing or could not be started.
    """
    name = command[0]
    try:
        process = subprocess.Popen(
            list(command),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            bufsize=0,
        )
    except OSError as e:
        raise SpawnError(f"Unable to start {name}: {e}") from e

    logger.debug("Started %s (pid %d).", " ".join(command), process.pid)
    feeder = _Feeder(prefix, source, process.stdin, options.chunk_size)
    feeder.start()
    return ProcessReader(process, feeder, name, options.process_timeout)

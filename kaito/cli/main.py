import logging
import re
import shutil
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

import kaito

app = App(
    help="Decompress gzip, bzip2 and xz files, detecting the format from the data.",
    version=kaito.__version__,
)

logger = logging.getLogger("kaito")

_suffix_re = re.compile(r"\.(?:gz|bz2|xz)$", re.IGNORECASE)


def setup_logging(verbose: bool = False, debug: bool = False):
    """Send kaito's log records to stderr.

    Default level is ``WARNING``; ``verbose`` selects ``INFO`` and ``debug``
    selects ``DEBUG`` with timestamps.
    """
    handler = logging.StreamHandler(sys.stderr)
    if debug:
        level = logging.DEBUG
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
    else:
        level = logging.INFO if verbose else logging.WARNING
        handler.setFormatter(logging.Formatter("kaito: %(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def output_path(path: Path) -> Path:
    """Strip a ``.gz``, ``.bz2`` or ``.xz`` suffix from ``path``.

    Raises
    ------
    ValueError
        ``path`` has none of the known suffixes.
    """
    match = _suffix_re.search(path.name)
    if match is None:
        raise ValueError("Filename has an unknown suffix, skipping")
    return path.with_name(path.name[: match.start()])


def decompress_stream(src, dst, options: kaito.Options):
    with kaito.Reader(src, options) as reader:
        shutil.copyfileobj(reader, dst)


def decompress_file(path: Path, options: kaito.Options, to_stdout: bool = False, keep: bool = False) -> bool:
    """Decompress a single file.

    Returns
    -------
    bool
        ``True`` on success. Failures have already been logged.
    """
    if str(path) == "-":
        try:
            decompress_stream(sys.stdin.buffer, sys.stdout.buffer, options)
        except OSError as e:
            logger.error("%s", e)
            return False
        return True

    if to_stdout:
        try:
            decompress_stream(path, sys.stdout.buffer, options)
        except OSError as e:
            logger.error("%s: %s", path, e)
            return False
        return True

    try:
        output = output_path(path)
    except ValueError as e:
        logger.error("%s: %s", path, e)
        return False

    try:
        reader = kaito.Reader(path, options)
    except OSError as e:
        logger.error("%s: %s", path, e)
        return False

    dst = None
    try:
        with reader:
            try:
                dst = output.open("xb")
            except OSError as e:
                logger.error("%s, skipping", e)
                return False
            with dst:
                shutil.copyfileobj(reader, dst)
    except OSError as e:
        logger.error("%s: %s", path, e)
        if dst is not None:
            output.unlink()
        return False

    logger.info("%s -> %s (%s)", path, output, reader.codec.value)

    if not keep:
        try:
            path.unlink()
        except OSError as e:
            logger.error("%s: %s", path, e)
            return False
    return True


@app.default
def main(
    *files: Annotated[Path, Parameter(allow_leading_hyphen=True)],
    disable_gzip: Annotated[bool, Parameter(name=["--disable-gzip", "-G"], negative="")] = False,
    disable_bzip2: Annotated[bool, Parameter(name=["--disable-bzip2", "-B"], negative="")] = False,
    disable_xz: Annotated[bool, Parameter(name=["--disable-xz", "-X"], negative="")] = False,
    force_native: Annotated[bool, Parameter(name=["--force-native", "-n"], negative="")] = False,
    stdout: Annotated[bool, Parameter(name=["--stdout", "-c"], negative="")] = False,
    keep: Annotated[bool, Parameter(name=["--keep", "-k"], negative="")] = False,
    decompress: Annotated[bool, Parameter(name=["--decompress", "-d"], negative="")] = False,
    verbose: Annotated[bool, Parameter(name=["--verbose", "-v"], negative="")] = False,
    debug: Annotated[bool, Parameter(negative="")] = False,
) -> int:
    """Decompress files, or standard input when no files are given.

    Parameters
    ----------
    files: Path
        Files to decompress. ``-`` reads standard input.
    disable_gzip: bool
        Disable Gzip decompression and pass through raw input.
    disable_bzip2: bool
        Disable Bzip2 decompression and pass through raw input.
    disable_xz: bool
        Disable Xz decompression and pass through raw input.
    force_native: bool
        Use the in-process decoders instead of the gzip, bzip2 and xz programs.
    stdout: bool
        Write the decompressed data to standard output instead of a file. This implies --keep.
    keep: bool
        Don't delete the input files.
    decompress: bool
        No-op, accepted for use as ``tar -I kaito``.
    verbose: bool
        Report each decompressed file.
    debug: bool
        Log format detection and decoder selection.
    """
    setup_logging(verbose=verbose, debug=debug)

    options = kaito.Options(
        disable_gzip=disable_gzip,
        disable_bzip2=disable_bzip2,
        disable_xz=disable_xz,
        force_native=force_native,
    )
    if stdout:
        keep = True
    if not files:  # Filter mode
        files = (Path("-"),)

    failed = 0
    for path in files:
        if not decompress_file(path, options, to_stdout=stdout, keep=keep):
            failed += 1
    return 1 if failed else 0


def run_app():
    sys.exit(app())

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--no-external",
        action="store_true",
        default=False,
        help="Skip tests that run the gzip, bzip2 and xz programs.",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "external: mark test as running external decompressors (use --no-external to skip)"
    )


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--no-external"):
        # --no-external not given: run external decompressor tests
        return
    skip_external = pytest.mark.skip(reason="--no-external option used")
    for item in items:
        if "external" in item.keywords:
            item.add_marker(skip_external)

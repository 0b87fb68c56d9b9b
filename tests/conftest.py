import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # configure_logging() replaces root handlers; keep tests isolated
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)

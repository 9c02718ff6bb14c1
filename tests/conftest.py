import logging
from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)  # type: ignore[misc]
def reset_logging() -> Iterator[None]:
    # The REPL and CLI reconfigure logging; keep tests independent.
    root = logging.getLogger()
    pkg_logger = logging.getLogger("kaleido")
    root_handlers, root_level = root.handlers[:], root.level
    pkg_level = pkg_logger.level
    yield
    root.handlers[:] = root_handlers
    root.setLevel(root_level)
    pkg_logger.setLevel(pkg_level)

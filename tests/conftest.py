import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from blockparse.builder.registry import BlockTypeRegistry  # noqa: E402
from blockparse.library.core_blocks import build_core_registry  # noqa: E402


@pytest.fixture
def isolate_logging():
    """Isolate logging configuration between tests.

    The CLI calls ``logging.basicConfig(force=True)``; this fixture restores
    the root logger afterwards so handlers bound to closed streams do not leak
    into later tests.
    """
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level

    logging.root.handlers.clear()
    logging.root.addHandler(logging.NullHandler())

    yield

    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


@pytest.fixture
def core_registry() -> BlockTypeRegistry:
    """A fresh registry with the core block library."""
    return build_core_registry()


@pytest.fixture
def empty_registry() -> BlockTypeRegistry:
    return BlockTypeRegistry()


@pytest.fixture
def event_codes(caplog: pytest.LogCaptureFixture):
    """Callable returning the event codes of captured records, in order."""

    def codes() -> list[str]:
        return [record.event_code for record in caplog.records if hasattr(record, "event_code")]

    return codes

# tests/promptpacks/core/test_log_filters.py
from __future__ import annotations
import logging

import pytest

from promptpacks.core.logging.filters import RecurringSuppressFilter
from promptpacks.core.logging.formatters import DevFormatter, JsonFormatter, RedactingFormatter
from promptpacks.core.logging import clearLogContext, setLogContext


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def captured():
    logger = logging.getLogger("tests.promptpacks.suppress")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    handler = ListHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


def test_suppresses_after_max_and_summarizes_when_window_slides(captured) -> None:
    logger, handler = captured
    clock = FakeClock()
    handler.addFilter(RecurringSuppressFilter(windowSeconds=10, maxPerWindow=2, clock=clock))

    for _ in range(5):
        logger.warning("index unavailable")
    assert [record.getMessage() for record in handler.records] == ["index unavailable"] * 2

    clock.now += 11
    logger.warning("index unavailable")
    messages = [record.getMessage() for record in handler.records]
    assert messages[2] == "Suppressed 3 repeated logs: index unavailable"
    assert messages[3] == "index unavailable"


def test_distinct_messages_are_independent(captured) -> None:
    logger, handler = captured
    handler.addFilter(RecurringSuppressFilter(windowSeconds=10, maxPerWindow=1, clock=FakeClock()))
    logger.info("a")
    logger.info("b")
    logger.info("a")
    assert [record.getMessage() for record in handler.records] == ["a", "b"]


def test_redacting_dev_formatter_includes_cycle_context() -> None:
    record = logging.LogRecord("promptpacks.sync", logging.INFO, __file__, 1, "GET %s", ("https://x.test/i.json?sig=abc",), None)
    setLogContext(cycleId="c0ffee", collection="packs")
    try:
        out = RedactingFormatter(DevFormatter()).format(record)
    finally:
        clearLogContext()
    assert "abc" not in out
    assert "[c0ffee/packs]" in out


def test_json_formatter_emits_one_line() -> None:
    record = logging.LogRecord("promptpacks.packs", logging.WARNING, __file__, 1, "line1\nline2", None, None)
    out = JsonFormatter().format(record)
    assert "\n" not in out
    assert '"level":"warning"' in out

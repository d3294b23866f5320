import logging

import pytest

from hyperwire.logger import BoundLogger, create_logger, parse_log_level


class RecordingLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def debug(self, msg: str, *args) -> None:
        self.records.append(("debug", msg % args))

    def warning(self, msg: str, *args) -> None:
        self.records.append(("warning", msg % args))

    def error(self, msg: str, *args) -> None:
        self.records.append(("error", msg % args))


def test_level_filtering_with_duck_typed_logger() -> None:
    sink = RecordingLogger()
    logger = create_logger(logger=sink, level="warn")
    logger.debug("hidden")
    logger.warn("shown %s", 1)
    logger.error("also %s", "shown")
    assert sink.records == [("warning", "shown 1"), ("error", "also shown")]


def test_child_logger_keeps_level_and_namespace(caplog) -> None:
    base = BoundLogger(logging.getLogger("hyperwire.test"), level="debug")
    child = base.child("batch")
    assert child.level == "debug"
    with caplog.at_level(logging.DEBUG, logger="hyperwire.test"):
        child.debug("registered %d requests", 3)
    assert caplog.records[-1].name == "hyperwire.test.batch"
    assert caplog.records[-1].getMessage() == "registered 3 requests"


def test_create_logger_returns_bound_logger_unchanged() -> None:
    bound = BoundLogger(RecordingLogger())
    assert create_logger(logger=bound) is bound


@pytest.mark.parametrize(
    ("raw", "level"),
    [("TRACE", "trace"), ("debug", "debug"), ("Warning", "warn"), (" error ", "error")],
)
def test_parse_log_level(raw: str, level: str) -> None:
    assert parse_log_level(raw) == level


def test_parse_log_level_rejects_unknown_levels() -> None:
    with pytest.raises(ValueError):
        parse_log_level("verbose")

"""Test the centralized logging functionality."""

import logging
from io import StringIO

from chantopo.log_config import get_logger, set_global_log_level


def test_set_global_log_level():
    """Test that set_global_log_level configures logging properly."""
    set_global_log_level(logging.WARNING)
    assert logging.getLogger("chantopo").level == logging.WARNING

    set_global_log_level(logging.DEBUG)
    assert logging.getLogger("chantopo").level == logging.DEBUG

    set_global_log_level(logging.INFO)
    assert logging.getLogger("chantopo").level == logging.INFO


def test_logger_hierarchy():
    """Test that module loggers inherit the package level."""
    set_global_log_level(logging.WARNING)

    child_logger = get_logger("chantopo.neighbors")

    assert child_logger.getEffectiveLevel() == logging.WARNING


def test_logging_output():
    """Test that logging outputs at correct levels."""
    logger = get_logger("chantopo.test.output")

    log_capture = StringIO()
    handler = logging.StreamHandler(log_capture)
    handler.setLevel(logging.DEBUG)

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    logger.debug("Debug message")
    logger.info("Info message")
    logger.warning("Warning message")

    log_output = log_capture.getvalue()
    assert "Debug message" in log_output
    assert "Info message" in log_output
    assert "Warning message" in log_output


def test_index_build_logs_summary(small_rules, eta_side_assigner, caplog):
    from chantopo.topology import TopologyIndex

    with caplog.at_level(logging.INFO, logger="chantopo"):
        TopologyIndex(small_rules, eta_side_assigner)
    assert any("32 channels" in r.getMessage() for r in caplog.records)


def test_records_carry_thread_name(caplog):
    from chantopo.log_config import LOG_FORMAT

    assert "%(threadName)s" in LOG_FORMAT
    formatter = logging.Formatter(LOG_FORMAT)
    with caplog.at_level(logging.INFO, logger="chantopo"):
        get_logger("chantopo.test.thread").info("filled")
    assert "MainThread chantopo.test.thread: filled" in formatter.format(
        caplog.records[-1]
    )

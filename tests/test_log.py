import io
import json
import logging
import sys

from rich.logging import RichHandler

from gwsadmin.log import JSONFormatter, LOGGER_NAME, parse_level, setup_logging


def test_parse_level():
    assert(parse_level("debug") == logging.DEBUG)
    assert(parse_level("WARN") == logging.WARNING)
    assert(parse_level("fatal") == logging.CRITICAL)
    assert(parse_level("disabled") > logging.CRITICAL)
    assert(parse_level("chatty") == logging.INFO)
    assert(parse_level(None) == logging.INFO)


def test_setup_logging_replaces_handlers():
    logger = setup_logging("warn")
    logger = setup_logging("error")
    assert(logger.name == LOGGER_NAME)
    assert(len(logger.handlers) == 1)
    assert(isinstance(logger.handlers[0], RichHandler))
    assert(logger.level == logging.ERROR)
    assert(not logger.propagate)
    assert(setup_logging("error", verbose=True).level == logging.DEBUG)


def test_json_formatter():
    logger = setup_logging("debug", json_format=True)
    buf = io.StringIO()
    logger.handlers[0].setStream(buf)
    logging.getLogger(f"{LOGGER_NAME}.api").debug("API call %s", "list", extra={"operation": "list"})
    entry = json.loads(buf.getvalue().splitlines()[-1])
    assert(entry["level"] == "debug")
    assert(entry["message"] == "API call list")
    assert(entry["operation"] == "list")
    assert(entry["logger"] == "gwsadmin.api")


def test_json_formatter_exception():
    record = logging.LogRecord("gwsadmin", logging.ERROR, __file__, 1, "boom", None, None)
    try:
        raise ValueError("bad")
    except ValueError:
        record.exc_info = sys.exc_info()
    entry = json.loads(JSONFormatter().format(record))
    assert("ValueError: bad" in entry["exception"])

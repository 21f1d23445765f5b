# /tests/test_logging_config.py
from __future__ import annotations

import logging

import config
from ip_anonymizer import anonymize
from logging_config import LOGGING_CONFIG, IPAnonymizingFilter, IPRemovingFilter


def _access_record() -> logging.LogRecord:
    # Shape of the records uvicorn.access emits
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("203.0.113.42:51234", "GET", "/api-server/hello", "1.1", 200),
        exc_info=None,
    )


def test_anonymizing_filter_rewrites_access_args():
    record = _access_record()
    assert IPAnonymizingFilter().filter(record) is True

    assert record.args[0] == f"{anonymize('203.0.113.42')}:51234"
    assert record.args[1:] == ("GET", "/api-server/hello", "1.1", 200)
    assert "203.0." in record.getMessage()


def test_anonymizing_filter_rewrites_message_text():
    record = logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1,
                               "172.18.0.2:59452 - GET /", None, None)
    IPAnonymizingFilter().filter(record)
    assert record.msg == f"{anonymize('172.18.0.2')}:59452 - GET /"


def test_anonymizing_filter_handles_client_addr_tuple():
    record = _access_record()
    record.client_addr = ("198.51.100.7", 443)
    IPAnonymizingFilter().filter(record)
    assert record.client_addr == (anonymize("198.51.100.7"), 443)


def test_removing_filter_strips_addresses():
    record = _access_record()
    record.client_addr = ("198.51.100.7", 443)
    assert IPRemovingFilter().filter(record) is True

    assert record.args[0] == "***:***"
    assert record.client_addr == ("***", 0)
    assert "203.0.113.42" not in record.getMessage()


def test_logging_config_wires_selected_filter():
    access_handler = LOGGING_CONFIG["handlers"]["access"]
    assert access_handler["filters"] == [config.ACCESS_LOG_IP_FILTER]
    assert config.ACCESS_LOG_IP_FILTER in LOGGING_CONFIG["filters"]
    assert LOGGING_CONFIG["loggers"]["uvicorn.access"]["handlers"] == ["access"]


def test_access_client_already_anonymized_by_middleware_is_logged_once():
    # The middleware put the anonymized address into the scope, so uvicorn logs it as is
    shown = anonymize("203.0.113.42")
    record = _access_record()
    record.args = (f"{shown}:51234",) + record.args[1:]

    IPAnonymizingFilter(rewrite_access_client=False).filter(record)

    assert record.args[0] == f"{shown}:51234"
    assert record.getMessage().startswith(f"{shown}:51234 - ")


def test_access_client_rewritten_when_scope_keeps_real_address():
    record = _access_record()
    IPAnonymizingFilter(rewrite_access_client=True).filter(record)
    assert record.args[0] == f"{anonymize('203.0.113.42')}:51234"


def test_other_loggers_are_always_rewritten():
    record = logging.LogRecord("uvicorn.error", logging.INFO, __file__, 1,
                               "peer %s dropped", ("198.51.100.7:443",), None)
    IPAnonymizingFilter(rewrite_access_client=False).filter(record)
    assert record.args == (f"{anonymize('198.51.100.7')}:443",)


def test_access_rewrite_follows_scope_rewrite_setting():
    anonymize_filter = LOGGING_CONFIG["filters"]["anonymize_ip"]
    assert anonymize_filter["rewrite_access_client"] is (not config.ANONYMIZE_SCOPE_CLIENT)

"""
Custom logging configuration for uvicorn that anonymizes IP addresses.
"""
import logging
import re
from typing import Any, Dict

import config
from ip_anonymizer import anonymize

# Matches "IP:PORT" as rendered by uvicorn, e.g. "172.18.0.2:59452"
IP_PORT_PATTERN = re.compile(r'(\d+\.\d+\.\d+\.\d+):(\d+)')


def _anonymize_ip_port(text: str) -> str:
    return IP_PORT_PATTERN.sub(lambda m: f"{anonymize(m.group(1))}:{m.group(2)}", text)


def _remove_ip_port(text: str) -> str:
    return IP_PORT_PATTERN.sub('***:***', text)


class IPAnonymizingFilter(logging.Filter):
    """
    Filter that replaces IP addresses in log records with their geo-preserving anonymized form.

    With rewrite_access_client=False the client argument of uvicorn.access
    records is left as is: IPAnonymizerMiddleware has already put the
    anonymized address into the ASGI scope, and anonymizing it again would
    log a value that no longer matches the one sent to analytics.
    """

    def __init__(self, rewrite_access_client: bool = True, name: str = ""):
        super().__init__(name)
        self.rewrite_access_client = rewrite_access_client

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, 'client_addr'):
            client_addr = record.client_addr
            if isinstance(client_addr, tuple):
                port = client_addr[1] if len(client_addr) > 1 else 0
                record.client_addr = (anonymize(client_addr[0]), port)
            elif isinstance(client_addr, str):
                record.client_addr = _anonymize_ip_port(client_addr)

        # uvicorn.access passes "IP:PORT" as the first format argument
        if isinstance(record.args, tuple):
            keep_first = record.name == "uvicorn.access" and not self.rewrite_access_client
            record.args = tuple(
                arg if (i == 0 and keep_first) or not isinstance(arg, str) else _anonymize_ip_port(arg)
                for i, arg in enumerate(record.args)
            )

        if isinstance(record.msg, str):
            record.msg = _anonymize_ip_port(record.msg)

        return True


class IPRemovingFilter(logging.Filter):
    """Filter that completely removes IP addresses from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, 'client_addr'):
            record.client_addr = ("***", 0)

        if isinstance(record.args, tuple):
            record.args = tuple(
                _remove_ip_port(arg) if isinstance(arg, str) else arg for arg in record.args
            )

        if isinstance(record.msg, str):
            record.msg = _remove_ip_port(record.msg)

        return True


LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "anonymize_ip": {
            "()": IPAnonymizingFilter,
            "rewrite_access_client": not config.ANONYMIZE_SCOPE_CLIENT,
        },
        "remove_ip": {
            "()": IPRemovingFilter,
        },
    },
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(message)s",
            "use_colors": None,
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(client_addr)s - "%(request_line)s" %(status_code)s',
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "filters": [config.ACCESS_LOG_IP_FILTER],  # "anonymize_ip" or "remove_ip"
        },
    },
    "loggers": {
        "uvicorn": {
            "handlers": ["default"],
            "level": "INFO",
        },
        "uvicorn.error": {
            "level": "INFO",
        },
        "uvicorn.access": {
            "handlers": ["access"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

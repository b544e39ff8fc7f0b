"""Structured (JSON) logging for hosts that run the session store."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter


class ServiceFilter(logging.Filter):
    """Stamps every record with the service name.

    Session payloads never go into log records; ids are truncated by the callers.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self._service_name
        return True


def configure_logging(level: str, service_name: str) -> None:
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(service)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ServiceFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def short_id(session_id: str) -> str:
    return session_id[:8] + "..."

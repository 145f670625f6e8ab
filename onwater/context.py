"""Request-scoped logging context.

Each in-flight request gets its own ``RequestContext`` stored in a
``ContextVar``, so concurrent requests never see each other's request id or
logger.
"""
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

BASE_LOGGER_NAME = "onwater"


class ContextLogger(logging.LoggerAdapter):
    """LoggerAdapter that carries bound fields.

    Fields are appended to the message as ``key=value`` pairs and attached to
    the record as ``record.fields``. ``bind`` returns a child logger with the
    extra fields merged in; the parent is left untouched.
    """

    def __init__(self, logger: logging.Logger, fields: dict[str, Any] | None = None):
        super().__init__(logger, dict(fields or {}))

    def bind(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **fields})

    def process(self, msg, kwargs):
        fields = {**self.extra, **kwargs.pop("fields", {})}
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        if fields:
            rendered = " ".join(f"{k}={v}" for k, v in fields.items())
            msg = f"{msg} {rendered}"
        return msg, kwargs


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    logger: ContextLogger


_base_logger = ContextLogger(logging.getLogger(BASE_LOGGER_NAME))
_request_context: ContextVar[RequestContext | None] = ContextVar(
    "onwater_request_context", default=None
)


def get_logger(name: str | None = None) -> ContextLogger:
    if name is None:
        return _base_logger
    return ContextLogger(logging.getLogger(f"{BASE_LOGGER_NAME}.{name}"))


def current_logger() -> ContextLogger:
    ctx = _request_context.get()
    return ctx.logger if ctx is not None else _base_logger


def current_request_id() -> str | None:
    ctx = _request_context.get()
    return ctx.request_id if ctx is not None else None


def enter_request(request_id: str):
    """Install a fresh context for one request; returns the reset token."""
    ctx = RequestContext(request_id=request_id, logger=_base_logger.bind(request_id=request_id))
    return _request_context.set(ctx)


def exit_request(token) -> None:
    _request_context.reset(token)

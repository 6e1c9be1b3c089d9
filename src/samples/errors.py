"""Errors raised by the organization service client, and their reporting shapes.

The client raises one of two structured errors:
- `OrganizationServiceFaultError` when the service answers with a fault body
- `OrganizationServiceTimeoutError` when the transport times out

Anything else is reported as a generic error, optionally wrapping one of the above.
`classify_error` turns an exception into exactly one `ErrorRecord` variant.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, field_validator


class OrganizationServiceFault(BaseModel):
    timestamp: datetime
    error_code: int
    message: str = ""
    trace_text: Optional[str] = None
    inner_fault: Optional[OrganizationServiceFault] = None

    @field_validator("error_code", mode="before")
    @classmethod
    def _parse_error_code(cls, value):
        # Web API returns codes like "0x80040217".
        if isinstance(value, str):
            s = value.strip()
            return int(s, 16) if s.lower().startswith("0x") else int(s)
        return value

    @property
    def has_inner_fault(self) -> bool:
        return self.inner_fault is not None


class OrganizationServiceFaultError(Exception):
    """The organization service returned a structured fault."""

    def __init__(self, detail: OrganizationServiceFault) -> None:
        super().__init__(detail.message)
        self.detail = detail


class OrganizationServiceTimeoutError(TimeoutError):
    """A call to the organization service timed out.

    The transport error, when there is one, is chained as `__cause__`.
    """


@dataclass(frozen=True, slots=True)
class ServiceFaultRecord:
    detail: OrganizationServiceFault


@dataclass(frozen=True, slots=True)
class TimeoutRecord:
    message: str
    stack_trace: str | None
    inner_message: str | None


@dataclass(frozen=True, slots=True)
class GenericRecord:
    inner_message: str | None
    inner_fault: OrganizationServiceFault | None


ErrorRecord = Union[ServiceFaultRecord, TimeoutRecord, GenericRecord]


def inner_exception(exc: BaseException) -> BaseException | None:
    """Return the wrapped error: the explicit cause, else the implicit context."""

    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def safe_str(exc: BaseException) -> str:
    """`str(exc)`, or a placeholder when the error cannot render itself."""

    try:
        return str(exc)
    except Exception as e:
        return f"<unprintable {type(exc).__name__}: {type(e).__name__}>"


def _stack_trace(exc: BaseException) -> str | None:
    if exc.__traceback__ is None:
        return None
    try:
        return "".join(traceback.format_tb(exc.__traceback__)).rstrip() or None
    except Exception as e:
        return f"<unavailable stack trace: {type(e).__name__}>"


def classify_error(exc: BaseException) -> ErrorRecord:
    if isinstance(exc, OrganizationServiceFaultError):
        return ServiceFaultRecord(detail=exc.detail)

    if isinstance(exc, TimeoutError):
        inner = inner_exception(exc)
        return TimeoutRecord(
            message=safe_str(exc),
            stack_trace=_stack_trace(exc),
            inner_message=safe_str(inner) if inner is not None else None,
        )

    inner = inner_exception(exc)
    if inner is None:
        return GenericRecord(inner_message=None, inner_fault=None)
    return GenericRecord(
        inner_message=safe_str(inner),
        inner_fault=inner.detail if isinstance(inner, OrganizationServiceFaultError) else None,
    )

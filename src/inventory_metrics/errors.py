# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error codes and result values shared by the metrics engine.

Domain operations (collaborator reads, metric writes, monthly runs) never
raise for expected failures. They return a ``Result`` pairing a payload
with an optional ``ErrorCode`` so callers always receive a definite
``(data, error)`` answer.

Loaders (configuration files, CSV files) keep raising ``ValueError`` /
``FileNotFoundError`` like the rest of the package.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Kinds of failure reported by the engine."""

    BAD_REQUEST = "BAD_REQUEST"
    MISSING_INPUT = "MISSING_INPUT"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    FAILED_REQUEST = "FAILED_REQUEST"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an operation that may fail without raising.

    Attributes
    ----------
    data:
        Payload of the operation, or None when it could not be produced.
    error:
        ErrorCode describing the failure, or None on success.
    detail:
        Optional human-readable explanation (exception message, etc.).
    """

    data: Optional[T] = None
    error: Optional[ErrorCode] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "Result[Any]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: ErrorCode, detail: Optional[str] = None) -> "Result[Any]":
        return cls(data=None, error=error, detail=detail)

# SPDX-License-Identifier: MIT

"""Error taxonomy for cluster reads.

Nothing here is retried. A ``TransportError`` is surfaced verbatim to the
caller, which decides whether to run the whole operation again.
"""

from __future__ import annotations


class ComplianceError(Exception):
    """Base class for every error raised by compliance_health."""


class ResourceNotFoundError(ComplianceError):
    def __init__(self, kind: str, name: str, namespace: str = "") -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind} '{name}' not found{where}")


class TransportError(ComplianceError):
    """The cluster could not be reached, or refused the request."""

    def __init__(self, operation: str, cause: Exception | str, status: int | None = None) -> None:
        self.operation = operation
        self.status = status
        self.cause = cause
        detail = str(cause).strip() or type(cause).__name__
        super().__init__(f"failed to {operation}: {detail}")


class UnknownEnumValueError(ComplianceError, ValueError):
    def __init__(self, enum_name: str, value: str) -> None:
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"unrecognized {enum_name} value: {value!r}")


class InvalidSelectorError(ComplianceError, ValueError):
    pass


class MalformedResourceError(ComplianceError, ValueError):
    """An API object carries a field value that can't be interpreted."""

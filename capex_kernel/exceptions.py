"""
Typed Exception Hierarchy for the CAPEX Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CapexError:

    CapexError (base)
    |
    +-- RemoteError
    |   +-- RemoteUnavailableError
    |   +-- MalformedResponseError
    |   +-- InvalidIdentityError
    |
    +-- ValidationFailureError
    |
    +-- ConcurrencyError
    |   +-- SaveInProgressError
    |
    +-- ProjectNotEditableError
    |
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Remote          | REMOTE_UNAVAILABLE          | Network failure or non-success status
                | MALFORMED_RESPONSE          | Store answered with unparsable JSON
                | INVALID_IDENTITY            | Create returned no usable item id
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILURE          | Submit blocked by form violations
----------------|-----------------------------|-----------------------------------------
Concurrency     | SAVE_IN_PROGRESS            | Second save for the same project
----------------|-----------------------------|-----------------------------------------
Project         | PROJECT_NOT_EDITABLE        | Submit of an approved/in-review project
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_ERROR                | Malformed or incomplete configuration

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        service.submit(session)
    except ValidationFailureError as e:
        show_errors(e.report.violations)    # structured, nothing was sent
    except RemoteError as e:
        show_status(f"Store error: {e.code}")  # no automatic retry

No operation is retried automatically; the user re-triggers save/submit.
"""

from __future__ import annotations

from typing import Any


class CapexError(Exception):
    """
    Base exception for all CAPEX kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CAPEX_ERROR"


# Remote store exceptions


class RemoteError(CapexError):
    """Base exception for failures talking to the remote list store."""

    code: str = "REMOTE_ERROR"


class RemoteUnavailableError(RemoteError):
    """The store could not be reached or answered with a non-success status."""

    code: str = "REMOTE_UNAVAILABLE"

    def __init__(
        self,
        collection: str | None,
        operation: str,
        status_code: int | None = None,
        detail: str = "",
    ):
        self.collection = collection
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        where = f" on {collection}" if collection else ""
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Remote {operation}{where} failed{status}: {detail}".rstrip(": "))


class MalformedResponseError(RemoteError):
    """The store answered with a body that is not valid JSON."""

    code: str = "MALFORMED_RESPONSE"

    def __init__(self, collection: str | None, operation: str, body_excerpt: str = ""):
        self.collection = collection
        self.operation = operation
        self.body_excerpt = body_excerpt[:200]
        super().__init__(
            f"Malformed response for {operation} on {collection}: {self.body_excerpt!r}"
        )


class InvalidIdentityError(RemoteError):
    """
    A create call succeeded but returned no usable item id.

    Fatal for the operation in progress: children cannot be linked to a
    parent without its id, so the remaining rebuild is aborted.
    """

    code: str = "INVALID_IDENTITY"

    def __init__(self, collection: str, response: Any = None):
        self.collection = collection
        self.response = response
        super().__init__(f"Create on {collection} returned no item id")


# Validation exceptions


class ValidationFailureError(CapexError):
    """Submission blocked: the form has one or more violations."""

    code: str = "VALIDATION_FAILURE"

    def __init__(self, report: Any):
        self.report = report
        count = len(report.violations)
        super().__init__(f"Form has {count} violation(s)")


# Concurrency exceptions


class ConcurrencyError(CapexError):
    """Base exception for concurrent modification errors."""

    code: str = "CONCURRENCY_ERROR"


class SaveInProgressError(ConcurrencyError):
    """A structure save for the same project is already running."""

    code: str = "SAVE_IN_PROGRESS"

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"A save for project {project_id} is already in flight")


# Project lifecycle exceptions


class ProjectNotEditableError(CapexError):
    """The project status does not allow edits or resubmission."""

    code: str = "PROJECT_NOT_EDITABLE"

    def __init__(self, project_id: int | None, status: str):
        self.project_id = project_id
        self.status = status
        super().__init__(f"Project {project_id} is not editable in status {status!r}")


# Configuration exceptions


class ConfigError(CapexError):
    """Configuration file is missing required keys or holds invalid values."""

    code: str = "CONFIG_ERROR"

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)

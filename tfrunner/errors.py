"""Exception hierarchy for API calls and the run workflow.

Two layers:

- ``TerraformAPIError`` is raised by :class:`~tfrunner.client.TerraformClient`
  for HTTP error responses and carries the JSON:API ``errors`` list.
- ``RunWorkflowError`` is raised by the orchestrator.  It records which
  operation failed, chains the underlying exception as its cause, and
  optionally carries the API error payload.  Its string form keeps the
  ``"<operation>: <message>"`` shape so callers can match on text.
"""

from __future__ import annotations

import json
from typing import Any

from tfrunner.models.enums import WorkflowStep

# ---------------------------------------------------------------------------
# API layer
# ---------------------------------------------------------------------------


class TerraformAPIError(Exception):
    """The API answered with an HTTP error status."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        *,
        errors: list[Any] | None = None,
        response_body: str = "",
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.errors = errors
        self.response_body = response_body
        super().__init__(f"Request failed with status code {status_code}: {message}")


class TerraformNotFoundError(TerraformAPIError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Not found", **kwargs: Any) -> None:
        super().__init__(404, message, **kwargs)


# ---------------------------------------------------------------------------
# Workflow layer
# ---------------------------------------------------------------------------


class RunWorkflowError(Exception):
    """A step of the run workflow failed; the whole workflow is aborted."""

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        step: WorkflowStep | None = None,
        api_errors: list[Any] | None = None,
    ) -> None:
        self.operation = operation
        self.message = message
        self.step = step
        self.api_errors = api_errors
        text = f"{operation}: {message}"
        if api_errors is not None:
            text += f"\nResponse: {json.dumps(api_errors)}"
        super().__init__(text)

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception, if the failure wrapped one."""
        return self.__cause__


class WorkspaceNameError(RunWorkflowError, ValueError):
    """Workspace name is malformed; raised before any request is sent."""


class WorkspaceNotFoundError(RunWorkflowError, LookupError):
    """The organization has no workspace with the requested name."""


class ConfigVersionTimeoutError(RunWorkflowError):
    """Configuration version was still ``pending`` after the retry limit."""

    def __init__(self, operation: str, attempts: int, **kwargs: Any) -> None:
        self.attempts = attempts
        super().__init__(
            operation,
            f"Config version status was still pending after {attempts} attempts.",
            **kwargs,
        )


class ConfigVersionStatusError(RunWorkflowError):
    """Configuration version settled in a state other than ``uploaded``."""

    def __init__(self, operation: str, status: Any, **kwargs: Any) -> None:
        self.status = status
        super().__init__(operation, f"Invalid config version status: {json.dumps(status)}", **kwargs)


class RunPollTimeoutError(RunWorkflowError):
    """Run never reached a terminal-success status within the retry limit."""

    def __init__(self, operation: str, last_status: str | None, **kwargs: Any) -> None:
        self.last_status = last_status
        super().__init__(operation, f"Run status was {last_status}", **kwargs)

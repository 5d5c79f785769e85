"""Shared enumerations for configuration versions, runs and the workflow."""

from __future__ import annotations

from enum import StrEnum

# -- Configuration version ---------------------------------------------------


class ConfigVersionStatus(StrEnum):
    """Configuration version states observed by the upload loop."""

    PENDING = "pending"
    UPLOADED = "uploaded"


# -- Run ---------------------------------------------------------------------


class RunStatus(StrEnum):
    """Run states this client names explicitly.

    The API reports many more intermediate states (``planning``,
    ``applying``, ...); those arrive as plain strings.
    """

    PLANNED_AND_FINISHED = "planned_and_finished"
    APPLIED = "applied"


TERMINAL_RUN_STATUSES = frozenset({RunStatus.PLANNED_AND_FINISHED.value, RunStatus.APPLIED.value})
"""The only statuses that end the run-status loop successfully."""


# -- Workflow ----------------------------------------------------------------


class WorkflowStep(StrEnum):
    """Last completed step of a ``RunOrchestrator.run`` invocation, recorded on failures."""

    START = "start"
    WORKSPACE_RESOLVED = "workspace_resolved"
    CONFIG_CREATED = "config_created"
    CONFIG_UPLOADED = "config_uploaded"
    RUN_CREATED = "run_created"

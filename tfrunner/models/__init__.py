"""Data models for the run workflow."""

from tfrunner.models.api import (
    ConfigurationVersion,
    ConfigurationVersionCreate,
    RunCreate,
    RunResult,
    dump_body,
)
from tfrunner.models.enums import (
    TERMINAL_RUN_STATUSES,
    ConfigVersionStatus,
    RunStatus,
    WorkflowStep,
)

__all__ = [
    "TERMINAL_RUN_STATUSES",
    # Enums
    "ConfigVersionStatus",
    # API schemas
    "ConfigurationVersion",
    "ConfigurationVersionCreate",
    "RunCreate",
    "RunResult",
    "RunStatus",
    "WorkflowStep",
    "dump_body",
]

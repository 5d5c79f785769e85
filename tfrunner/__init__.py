"""Upload Terraform configurations and drive runs through the Terraform Cloud API."""

from tfrunner.client import TerraformClient
from tfrunner.errors import RunWorkflowError, TerraformAPIError
from tfrunner.models.api import RunResult
from tfrunner.orchestrator import RunOrchestrator

__all__ = [
    "RunOrchestrator",
    "RunResult",
    "RunWorkflowError",
    "TerraformAPIError",
    "TerraformClient",
]

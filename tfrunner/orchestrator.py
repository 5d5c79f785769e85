"""Run orchestrator -- upload a configuration and drive a run.

The orchestrator executes one linear workflow per :meth:`RunOrchestrator.run`
call:

1. **Resolve** the workspace name to its id
2. **Create** a configuration version (auto-queue disabled)
3. **Upload** the bundle and wait until the version is processed
4. **Create** the run
5. **Poll** the run until it is planned or applied (optional)

Every step depends on the previous step's output, so nothing runs in
parallel.  A failure at any step aborts the workflow with a
:class:`~tfrunner.errors.RunWorkflowError`; there is no resume, and a retry
from the caller creates a fresh configuration version and run.

Two bounded, fixed-delay retry loops absorb the API's eventual consistency:

- after upload, the configuration version status is re-checked every
  ``retry_duration`` seconds while it is ``pending``;
- the run status is polled every ``poll_interval`` seconds until it reaches
  ``planned_and_finished`` or ``applied``.

Both loops are capped by ``retry_limit``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from tfrunner.client import TerraformClient
from tfrunner.errors import (
    ConfigVersionStatusError,
    ConfigVersionTimeoutError,
    RunPollTimeoutError,
    RunWorkflowError,
    TerraformAPIError,
    TerraformNotFoundError,
    WorkspaceNameError,
    WorkspaceNotFoundError,
)
from tfrunner.models.api import (
    ConfigurationVersion,
    ConfigurationVersionCreate,
    RunCreate,
    RunResult,
    dump_body,
)
from tfrunner.models.enums import TERMINAL_RUN_STATUSES, ConfigVersionStatus, WorkflowStep
from tfrunner.payload import ensure_readable, open_payload
from tfrunner.settings import DEFAULT_RUN_MESSAGE

if TYPE_CHECKING:
    from tfrunner.payload import PayloadSource
    from tfrunner.settings import TfRunnerSettings

OP_CHECK_WORKSPACE = "Error checking the workspace"
OP_CREATE_CONFIG_VERSION = "Error creating the config version"
OP_GET_CONFIG_VERSION = "Error getting configuration version"
OP_UPLOAD_CONFIGURATION = "Error uploading the configuration"
OP_REQUEST_RUN = "Error requesting the run"
OP_RUN_STATUS = "Error requesting run status"

# Failures a step wraps into a RunWorkflowError.
_STEP_ERRORS = (httpx.HTTPError, TerraformAPIError, OSError, ValueError, KeyError, TypeError)


def _data(envelope: dict[str, Any]) -> dict[str, Any] | None:
    data = envelope.get("data")
    return data if isinstance(data, dict) else None


def _status(envelope: dict[str, Any]) -> str:
    """Read ``data.attributes.status``.  Raises ``KeyError`` if absent."""
    data = _data(envelope)
    if data is None:
        raise KeyError("data")
    return data["attributes"]["status"]


def _api_errors(exc: BaseException) -> list[Any] | None:
    if isinstance(exc, TerraformAPIError):
        return exc.errors
    return None


class RunOrchestrator:
    """Creates configuration versions and runs for workspaces of one organization."""

    def __init__(
        self,
        client: TerraformClient,
        organization: str,
        *,
        retry_duration: float = 1.0,
        retry_limit: int = 5,
        poll_interval: float = 60.0,
        run_message: str = DEFAULT_RUN_MESSAGE,
        debug: bool = False,
    ) -> None:
        if retry_limit < 1:
            raise ValueError("retry_limit must be at least 1")
        self.client = client
        self.organization = organization
        self.retry_duration = retry_duration
        self.retry_limit = retry_limit
        self.poll_interval = poll_interval
        self.run_message = run_message
        self.debug = debug

    @classmethod
    def from_settings(
        cls,
        settings: TfRunnerSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> RunOrchestrator:
        """Build an orchestrator and its client from configuration."""
        client = TerraformClient(
            token=settings.token.get_secret_value(),
            address=settings.address,
            timeout_seconds=settings.request_timeout,
            http_client=http_client,
        )
        return cls(
            client,
            settings.organization,
            retry_duration=settings.retry_duration,
            retry_limit=settings.retry_limit,
            poll_interval=settings.poll_interval,
            run_message=settings.run_message,
            debug=settings.debug,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    # -- Steps -----------------------------------------------------------------

    async def resolve_workspace(self, name: str) -> str:
        """Return the id of workspace *name*.

        Names containing whitespace are rejected before any request is made.
        """
        if any(ch.isspace() for ch in name):
            raise WorkspaceNameError(
                OP_CHECK_WORKSPACE,
                "Workspace name should not contain spaces.",
                step=WorkflowStep.START,
            )

        try:
            envelope = await self.client.get_workspace(self.organization, name)
        except TerraformNotFoundError as exc:
            raise WorkspaceNotFoundError(OP_CHECK_WORKSPACE, "Workspace not found.", step=WorkflowStep.START) from exc
        except _STEP_ERRORS as exc:
            raise RunWorkflowError(OP_CHECK_WORKSPACE, str(exc), step=WorkflowStep.START) from exc

        data = _data(envelope)
        if data is None:
            raise RunWorkflowError(OP_CHECK_WORKSPACE, "No data returned from request.", step=WorkflowStep.START)
        if not data.get("id"):
            raise WorkspaceNotFoundError(OP_CHECK_WORKSPACE, "Workspace not found.", step=WorkflowStep.START)

        logger.info("Workspace resolved: {} -> {}", name, data["id"])
        return data["id"]

    async def create_configuration_version(self, workspace_id: str) -> ConfigurationVersion:
        """Create a configuration version with auto-queue disabled."""
        step = WorkflowStep.WORKSPACE_RESOLVED
        try:
            envelope = await self.client.create_configuration_version(
                workspace_id, dump_body(ConfigurationVersionCreate())
            )
            data = _data(envelope)
            if data is None:
                raise RunWorkflowError(OP_CREATE_CONFIG_VERSION, "No configuration returned from request.", step=step)
            config_version = ConfigurationVersion(id=data["id"], upload_url=data["attributes"]["upload-url"])
        except _STEP_ERRORS as exc:
            raise RunWorkflowError(OP_CREATE_CONFIG_VERSION, str(exc), step=step) from exc

        logger.info("Configuration version created: {} (workspace={})", config_version.id, workspace_id)
        return config_version

    async def get_configuration_version_status(self, config_version_id: str) -> str:
        try:
            envelope = await self.client.get_configuration_version(config_version_id)
            return _status(envelope)
        except _STEP_ERRORS as exc:
            raise RunWorkflowError(OP_GET_CONFIG_VERSION, str(exc), step=WorkflowStep.CONFIG_CREATED) from exc

    async def upload_and_await_processing(
        self,
        config_version_id: str,
        upload_url: str,
        payload: PayloadSource,
    ) -> None:
        """Upload the bundle, then wait while the version is ``pending``.

        The status is checked once after the upload and re-checked at most
        ``retry_limit`` more times, ``retry_duration`` seconds apart.
        """
        step = WorkflowStep.CONFIG_CREATED
        try:
            await ensure_readable(payload)
            await self.client.upload_configuration(upload_url, open_payload(payload))
            status = await self.get_configuration_version_status(config_version_id)
            retries = 0
            while status == ConfigVersionStatus.PENDING:
                if retries >= self.retry_limit:
                    raise ConfigVersionTimeoutError(OP_UPLOAD_CONFIGURATION, self.retry_limit, step=step)
                await self._sleep(self.retry_duration)
                status = await self.get_configuration_version_status(config_version_id)
                retries += 1
                logger.debug("Configuration version {} status: {} (retry {})", config_version_id, status, retries)
        except ConfigVersionTimeoutError:
            raise
        except (RunWorkflowError, *_STEP_ERRORS) as exc:
            raise RunWorkflowError(OP_UPLOAD_CONFIGURATION, str(exc), step=step) from exc

        if status != ConfigVersionStatus.UPLOADED:
            raise ConfigVersionStatusError(OP_UPLOAD_CONFIGURATION, status, step=step)

        logger.info("Configuration version uploaded: {}", config_version_id)

    async def create_run(self, workspace_id: str, identifier: str) -> RunResult:
        """Queue a non-destructive run whose message embeds *identifier*."""
        step = WorkflowStep.CONFIG_UPLOADED
        message = self.run_message.format(identifier=identifier)
        try:
            envelope = await self.client.create_run(dump_body(RunCreate.for_workspace(workspace_id, message)))
            data = _data(envelope)
            if data is None:
                raise RunWorkflowError(OP_REQUEST_RUN, "No data returned from request.", step=step)
            if not data.get("id"):
                raise RunWorkflowError(OP_REQUEST_RUN, "Run Id not found.", step=step)
            result = RunResult(run_id=data["id"], status=(data.get("attributes") or {}).get("status"))
        except RunWorkflowError:
            raise
        except _STEP_ERRORS as exc:
            raise RunWorkflowError(OP_REQUEST_RUN, str(exc), step=step, api_errors=_api_errors(exc)) from exc

        logger.info("Run created: {} (status={})", result.run_id, result.status)
        return result

    async def poll_run_until_terminal(self, run_id: str) -> str:
        """Poll the run until it is ``planned_and_finished`` or ``applied``.

        Any other status, including errored or canceled runs, keeps the loop
        going until ``retry_limit`` polls have been made.
        """
        step = WorkflowStep.RUN_CREATED
        last_status: str | None = None
        try:
            for attempt in range(1, self.retry_limit + 1):
                status = _status(await self.client.get_run(run_id))
                if status in TERMINAL_RUN_STATUSES:
                    logger.info("Run finished: {} (status={}, polls={})", run_id, status, attempt)
                    return status
                last_status = status
                if self.debug:
                    logger.info(
                        "Plan not finished/applied (run={}, status={}). Will now sleep for {}s",
                        run_id,
                        status,
                        self.poll_interval,
                    )
                if attempt < self.retry_limit:
                    await self._sleep(self.poll_interval)
        except _STEP_ERRORS as exc:
            raise RunWorkflowError(OP_RUN_STATUS, str(exc), step=step, api_errors=_api_errors(exc)) from exc

        raise RunPollTimeoutError(OP_RUN_STATUS, last_status, step=step)

    # -- Workflow --------------------------------------------------------------

    async def run(
        self,
        workspace: str,
        payload: PayloadSource,
        identifier: str,
        await_apply: bool = False,
    ) -> RunResult:
        """Create, upload and start a new run for *workspace*.

        Without *await_apply* the returned status is the one reported when
        the run was created; the run is not polled.
        """
        workspace_id = await self.resolve_workspace(workspace)
        config_version = await self.create_configuration_version(workspace_id)
        await self.upload_and_await_processing(config_version.id, config_version.upload_url, payload)
        result = await self.create_run(workspace_id, identifier)
        if await_apply:
            result = RunResult(run_id=result.run_id, status=await self.poll_run_until_terminal(result.run_id))
        return result

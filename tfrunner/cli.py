import asyncio
import json

import click


@click.group()
def main() -> None:
    """tfrunner - upload a Terraform configuration and queue a run."""


@main.command()
@click.argument("workspace")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False))
@click.argument("identifier")
@click.option("--await-apply", is_flag=True, default=False, help="Wait until the run is planned or applied.")
@click.option("--organization", default=None, help="Organization (default: from TFRUNNER_ORGANIZATION).")
@click.option("--address", default=None, help="API host (default: from TFRUNNER_ADDRESS or app.terraform.io).")
@click.option("--retry-limit", default=None, type=click.IntRange(min=1), help="Attempt cap for both polling loops.")
@click.option("--poll-interval", default=None, type=click.FloatRange(min=0), help="Seconds between run-status polls.")
@click.option("--timeout", default=None, type=click.FloatRange(min=0), help="Abort the whole workflow after N seconds.")
@click.option("--debug", is_flag=True, default=False, help="Log every unfinished run-status poll.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as a JSON object.")
def run(
    workspace: str,
    bundle: str,
    identifier: str,
    await_apply: bool,
    organization: str | None,
    address: str | None,
    retry_limit: int | None,
    poll_interval: float | None,
    timeout: float | None,
    debug: bool,
    as_json: bool,
) -> None:
    """Upload BUNDLE to WORKSPACE and queue a run tagged with IDENTIFIER."""
    from pydantic import ValidationError

    from tfrunner.errors import RunWorkflowError
    from tfrunner.log import setup_logging
    from tfrunner.orchestrator import RunOrchestrator
    from tfrunner.settings import TfRunnerSettings

    overrides = {
        "organization": organization,
        "address": address,
        "retry_limit": retry_limit,
        "poll_interval": poll_interval,
        "debug": debug or None,
    }
    try:
        settings = TfRunnerSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        raise click.UsageError(f"Invalid configuration:\n{exc}") from exc

    setup_logging(settings.log_level, debug=settings.debug)

    async def _run():
        orchestrator = RunOrchestrator.from_settings(settings)
        try:
            async with asyncio.timeout(timeout):
                return await orchestrator.run(workspace, bundle, identifier, await_apply=await_apply)
        finally:
            await orchestrator.aclose()

    try:
        result = asyncio.run(_run())
    except RunWorkflowError as exc:
        raise click.ClickException(str(exc)) from exc
    except TimeoutError as exc:
        msg = f"Workflow timed out after {timeout}s"
        raise click.ClickException(msg) from exc

    if as_json:
        click.echo(json.dumps(result.model_dump()))
    else:
        click.echo(f"run_id: {result.run_id}")
        click.echo(f"status: {result.status}")


if __name__ == "__main__":
    main()

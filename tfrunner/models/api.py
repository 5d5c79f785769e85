"""JSON:API request bodies and parsed resources.

Request bodies are built with pydantic and dumped ``by_alias`` so the
hyphenated attribute names (``auto-queue-runs``, ``is-destroy``) go out on
the wire exactly as the API expects.  Parsed results are the small slices of
the response envelopes the workflow actually consumes.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Configuration version
# ---------------------------------------------------------------------------


class ConfigurationVersionAttributes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auto_queue_runs: bool = Field(default=False, alias="auto-queue-runs")


class ConfigurationVersionData(BaseModel):
    type: Literal["configuration-versions"] = "configuration-versions"
    attributes: ConfigurationVersionAttributes = Field(default_factory=ConfigurationVersionAttributes)


class ConfigurationVersionCreate(BaseModel):
    """Body for ``POST /workspaces/{id}/configuration-versions``.

    Auto-queue is off: the run is created explicitly once the upload has
    been processed.
    """

    data: ConfigurationVersionData = Field(default_factory=ConfigurationVersionData)


class ConfigurationVersion(BaseModel):
    """A freshly created configuration version awaiting its upload."""

    id: str
    upload_url: str


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


class RunAttributes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_destroy: bool = Field(default=False, alias="is-destroy")
    message: str


class ResourceRef(BaseModel):
    type: str
    id: str


class Relationship(BaseModel):
    data: ResourceRef


class RunRelationships(BaseModel):
    workspace: Relationship


class RunData(BaseModel):
    type: Literal["runs"] = "runs"
    attributes: RunAttributes
    relationships: RunRelationships


class RunCreate(BaseModel):
    """Body for ``POST /runs``."""

    data: RunData

    @classmethod
    def for_workspace(cls, workspace_id: str, message: str) -> RunCreate:
        return cls(
            data=RunData(
                attributes=RunAttributes(message=message),
                relationships=RunRelationships(
                    workspace=Relationship(data=ResourceRef(type="workspaces", id=workspace_id)),
                ),
            )
        )


class RunResult(BaseModel):
    """Outcome of a workflow invocation: the run and its last known status."""

    run_id: str
    status: str | None = None


def dump_body(body: BaseModel) -> dict[str, Any]:
    """Serialize a request body with wire (alias) field names."""
    return body.model_dump(by_alias=True, mode="json")

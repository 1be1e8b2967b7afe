"""Ingest and restream data models shared by the provisioners and the orchestrator."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IngestEndpoint(BaseModel):
    """Server URL and stream key a broadcaster pushes to."""

    model_config = ConfigDict(frozen=True)

    server_url: str
    stream_key: str


class RestreamDestination(BaseModel):
    """Secondary ingest endpoint attached to an api.video live stream.

    Serialized with api.video field names (name, serverUrl, streamKey).
    """

    label: str = Field(
        ...,
        alias="name",
        validation_alias=AliasChoices("name", "label"),
        description="Display name, also used to detect the platform",
    )
    server_url: str = Field(
        ...,
        alias="serverUrl",
        validation_alias=AliasChoices("serverUrl", "server_url"),
    )
    stream_key: str = Field(
        ...,
        alias="streamKey",
        validation_alias=AliasChoices("streamKey", "stream_key"),
    )

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)


class LiveStreamResult(BaseModel):
    """api.video live stream as returned by create/get/update."""

    id: str
    name: str
    rtmp_url: str | None = None
    stream_key: str | None = None
    restreams: list[RestreamDestination] = Field(default_factory=list)


class BroadcastResult(BaseModel):
    """Facebook live video created for a page, with its parsed ingest endpoint."""

    id: str
    ingest_url: str
    endpoint: IngestEndpoint
    title: str
    description: str


__all__ = ["BroadcastResult", "IngestEndpoint", "LiveStreamResult", "RestreamDestination"]

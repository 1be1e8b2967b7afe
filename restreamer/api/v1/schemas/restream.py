from pydantic import BaseModel, Field

from restreamer.domain.restream.restream_models import ProvisioningOutputs
from restreamer.schemas import OperationStatus, RestreamDestination


class PrepareLiveIn(BaseModel):
    title: str = Field("Live Stream", min_length=1, max_length=255)
    description: str = Field("Automated live stream setup", max_length=5000)


class PrepareLiveOut(BaseModel):
    status: OperationStatus
    error: str | None = None
    stream_name: str | None = None
    restreams: list[RestreamDestination] = []
    outputs: ProvisioningOutputs


class StatusOut(BaseModel):
    status: OperationStatus
    last_error: str
    outputs: ProvisioningOutputs

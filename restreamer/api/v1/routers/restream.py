from fastapi import APIRouter, Depends

from restreamer.api.v1.schemas.base import ApiOut
from restreamer.api.v1.schemas.restream import PrepareLiveIn, PrepareLiveOut, StatusOut
from restreamer.domain.restream.orchestrator import RestreamOrchestrator
from restreamer.schemas import RestreamConfig

router = APIRouter(prefix="/restream")

# Singleton instance, initialized by the application lifespan
_orchestrator = RestreamOrchestrator()


def get_orchestrator() -> RestreamOrchestrator:
    """Get the singleton RestreamOrchestrator instance."""
    return _orchestrator


def _status_out(orchestrator: RestreamOrchestrator) -> StatusOut:
    snapshot = orchestrator.snapshot()
    return StatusOut(
        status=snapshot.status,
        last_error=snapshot.last_error,
        outputs=snapshot.outputs,
    )


@router.post("/prepare_live")
async def prepare_live(
    body: PrepareLiveIn,
    orchestrator: RestreamOrchestrator = Depends(get_orchestrator),
) -> ApiOut[PrepareLiveOut]:
    """Create the Facebook broadcast (if enabled) and the api.video live stream.

    A failed run still answers 200: the failure is part of the run result, with
    status "fail" and the error message.
    """
    result = await orchestrator.prepare_live(title=body.title, description=body.description)

    return ApiOut[PrepareLiveOut](
        results=PrepareLiveOut(
            status=result.status,
            error=result.error,
            stream_name=result.stream_name,
            restreams=result.restreams,
            outputs=result.outputs,
        )
    )


@router.get("/status")
async def get_status(
    orchestrator: RestreamOrchestrator = Depends(get_orchestrator),
) -> ApiOut[StatusOut]:
    return ApiOut[StatusOut](results=_status_out(orchestrator))


@router.post("/reset")
async def reset(
    orchestrator: RestreamOrchestrator = Depends(get_orchestrator),
) -> ApiOut[StatusOut]:
    """Return a finished run to idle. Fails with 409 while a run is in progress."""
    orchestrator.reset()
    return ApiOut[StatusOut](results=_status_out(orchestrator))


@router.post("/config")
async def update_config(
    body: RestreamConfig,
    orchestrator: RestreamOrchestrator = Depends(get_orchestrator),
) -> ApiOut[StatusOut]:
    """Replace the provisioning configuration."""
    await orchestrator.on_config_changed(body)
    return ApiOut[StatusOut](results=_status_out(orchestrator))

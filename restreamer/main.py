import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from restreamer.api.v1.errors import app_error_handler
from restreamer.api.v1.routers.restream import get_orchestrator
from restreamer.api.v1.routers.restream import router as restream_router
from restreamer.app_config import get_app_environ_config
from restreamer.schemas import RestreamConfig
from restreamer.shared.api.health import router as health_router
from restreamer.shared.api.utils import E_INTERNAL, E_INVALID_PARAMS, api_failure, init_logger
from restreamer.shared.config import config
from restreamer.utils.app_errors import AppError

REQUEST_ID_HEADER = "X-Request-ID"


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a short request id and echoes the id back in a header."""

    async def dispatch(self, request: Request, call_next):  # type: ignore
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        log = logger.bind(component="http")
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            log.exception(f"[{request_id}] {route} crashed after {elapsed_ms:.2f}ms")
            failure = api_failure(
                errcode=E_INTERNAL,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
                headers={REQUEST_ID_HEADER: request_id},
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(f"[{request_id}] {route} -> {response.status_code} ({elapsed_ms:.2f}ms)")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


async def app_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in errors]

    logger.warning("Rejected {} {}: invalid {}", request.method, request.url.path, fields)

    failure = api_failure(E_INVALID_PARAMS, errmesg=str(errors))
    return ORJSONResponse(status_code=422, content=failure.model_dump())


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger(debug=get_app_environ_config().DEBUG)

    orchestrator = get_orchestrator()
    await orchestrator.initialize(RestreamConfig.from_environ(config))
    logger.info("Restreamer API ready (provisioning configured: {})", orchestrator.is_ready_for_use())

    yield

    await orchestrator.shutdown()
    logger.info("Restreamer API stopped")


app = FastAPI(
    version="1.0",
    title="Restreamer API",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore

app.include_router(health_router)
app.include_router(restream_router, prefix="/api/v1")


def build_granian_kwargs():
    cfg = get_app_environ_config()
    return {
        "interface": "asgi",
        "address": cfg.API_HOST,
        "port": cfg.API_PORT,
        "workers": cfg.API_WORKERS,
        "reload": cfg.DEBUG,
    }


if __name__ == "__main__":
    Granian("restreamer.main:app", **build_granian_kwargs()).serve()

"""Application error taxonomy.

Every failure raised by the token and provisioning components is an AppError.
The HTTP surface turns it into an ApiFailure envelope, and the orchestrator
turns it into the `fail` status with `errmesg` as the last error.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_CREDENTIAL_INVALID = "E_CREDENTIAL_INVALID"
    E_PERMISSION_DENIED = "E_PERMISSION_DENIED"
    E_RESOURCE_NOT_FOUND = "E_RESOURCE_NOT_FOUND"
    E_PROVISIONING_FAILED = "E_PROVISIONING_FAILED"
    E_MALFORMED_INGEST_URL = "E_MALFORMED_INGEST_URL"
    E_CONFIGURATION_INCOMPLETE = "E_CONFIGURATION_INCOMPLETE"
    E_PROVIDER_ERROR = "E_PROVIDER_ERROR"
    E_INVALID_STATE_TRANSITION = "E_INVALID_STATE_TRANSITION"

    def __str__(self) -> str:
        return self.value


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


class AppError(Exception):
    """Base error carrying an errcode, a human-readable message and an HTTP status.

    The caller location is captured at construction time so log lines point at
    the raise site rather than at the exception handler.
    """

    default_errcode: AppErrorCode = AppErrorCode.E_INTERNAL_ERROR
    default_status_code: HttpStatusCode = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        errmesg: str,
        *,
        errcode: AppErrorCode | None = None,
        status_code: HttpStatusCode | int | None = None,
    ) -> None:
        super().__init__(errmesg)
        self.errcode = (errcode or self.default_errcode).value
        self.errmesg = errmesg
        self.status_code = int(status_code or self.default_status_code)
        self.erresid = uuid4().hex[:10]

        stack = inspect.stack()
        # Skip subclass __init__ frames so the location is the raise site
        caller_frame = next(
            (frame_info for frame_info in stack[1:] if frame_info.function != "__init__"),
            stack[1],
        )
        module = inspect.getmodule(caller_frame.frame)
        module_name = (
            module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
        )
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

    def __str__(self) -> str:
        return self.errmesg


class CredentialInvalidError(AppError):
    """Token rejected by the provider. Not retryable without operator action."""

    default_errcode = AppErrorCode.E_CREDENTIAL_INVALID
    default_status_code = HttpStatusCode.UNAUTHORIZED


class PermissionDeniedError(AppError):
    """Token is valid but lacks a required capability."""

    default_errcode = AppErrorCode.E_PERMISSION_DENIED
    default_status_code = HttpStatusCode.FORBIDDEN

    def __init__(self, errmesg: str, *, capability: str | None = None) -> None:
        super().__init__(errmesg)
        self.capability = capability


class ResourceNotFoundError(AppError):
    """Target resource is absent from the account's owned-resource list."""

    default_errcode = AppErrorCode.E_RESOURCE_NOT_FOUND
    default_status_code = HttpStatusCode.NOT_FOUND

    def __init__(self, errmesg: str, *, available: list[str] | None = None) -> None:
        super().__init__(errmesg)
        self.available = available or []


class ProvisioningFailedError(AppError):
    """Provider response is missing an expected field."""

    default_errcode = AppErrorCode.E_PROVISIONING_FAILED
    default_status_code = HttpStatusCode.BAD_GATEWAY


class MalformedIngestUrlError(AppError):
    """Provider returned an ingest URL that cannot be split into server and key."""

    default_errcode = AppErrorCode.E_MALFORMED_INGEST_URL
    default_status_code = HttpStatusCode.BAD_GATEWAY


class ConfigurationIncompleteError(AppError):
    """Caller-side precondition failure. Raised before any network call."""

    default_errcode = AppErrorCode.E_CONFIGURATION_INCOMPLETE
    default_status_code = HttpStatusCode.BAD_REQUEST

    def __init__(self, errmesg: str, *, field: str | None = None) -> None:
        super().__init__(errmesg)
        self.field = field


class ProviderError(AppError):
    """Uncategorized provider failure; errmesg carries the provider's message."""

    default_errcode = AppErrorCode.E_PROVIDER_ERROR
    default_status_code = HttpStatusCode.BAD_GATEWAY

    def __init__(self, errmesg: str, *, provider_code: int | None = None) -> None:
        super().__init__(errmesg)
        self.provider_code = provider_code

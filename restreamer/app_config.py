from pydantic import BaseModel, Field

from restreamer.schemas.tokens import ValidationPolicy
from restreamer.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG", False)

    API_HOST: str = (config.get("API_HOST") or "127.0.0.1").strip()
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 8000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)

    # Facebook Graph API
    GRAPH_API_BASE_URL: str = (config.get("GRAPH_API_BASE_URL") or "https://graph.facebook.com").strip()
    GRAPH_API_VERSION: str = (config.get("GRAPH_API_VERSION") or "v18.0").strip()
    # Liveness checks are cheap, so they get a tighter budget than other calls
    GRAPH_VALIDATE_TIMEOUT_SECONDS: float = float(
        (config.get("GRAPH_VALIDATE_TIMEOUT_SECONDS") or "").strip() or 5
    )
    GRAPH_TIMEOUT_SECONDS: float = float((config.get("GRAPH_TIMEOUT_SECONDS") or "").strip() or 10)
    # "lenient" fails open when a token cannot be classified, "strict" fails closed
    TOKEN_VALIDATION_POLICY: ValidationPolicy = Field(
        default=(config.get("TOKEN_VALIDATION_POLICY") or "lenient").strip().lower(),
        validate_default=True,
    )

    # api.video
    APIVIDEO_BASE_URL: str = (config.get("APIVIDEO_BASE_URL") or "https://ws.api.video").strip()
    APIVIDEO_TIMEOUT_SECONDS: float = float(
        (config.get("APIVIDEO_TIMEOUT_SECONDS") or "").strip() or 10
    )


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config

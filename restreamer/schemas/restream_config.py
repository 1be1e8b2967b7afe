"""Operator-supplied provisioning configuration."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from restreamer.shared.config import EnvironConfig


class StreamMode(str, Enum):
    """How the api.video live stream is provisioned.

    - CREATE: a new live stream per run, destinations attached at creation.
    - UPDATE: replace the destinations of an existing live stream.
    """

    CREATE = "create"
    UPDATE = "update"

    def __str__(self) -> str:
        return self.value


class RestreamConfig(BaseModel):
    """Settings the host collaborator passes to initialize / on_config_changed.

    Blank strings are normalized to None so "present and non-empty" checks only
    need to look for None.
    """

    apivideo_api_key: str | None = Field(default=None, description="api.video API key")
    stream_mode: StreamMode = StreamMode.CREATE
    apivideo_live_stream_id: str | None = Field(
        default=None, description="Existing live stream to update (UPDATE mode only)"
    )

    enable_facebook_restream: bool = False
    enable_youtube_restream: bool = False

    fb_page_id: str | None = None
    fb_user_token: str | None = None
    fb_app_id: str | None = None
    fb_app_secret: str | None = None

    yt_rtmp_url: str | None = None
    yt_stream_key: str | None = None

    @field_validator(
        "apivideo_api_key",
        "apivideo_live_stream_id",
        "fb_page_id",
        "fb_user_token",
        "fb_app_id",
        "fb_app_secret",
        "yt_rtmp_url",
        "yt_stream_key",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("stream_mode", mode="before")
    @classmethod
    def normalize_stream_mode(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or StreamMode.CREATE
        return v

    @classmethod
    def from_environ(cls, env: EnvironConfig) -> "RestreamConfig":
        """Build the config from upper-cased environment keys (APIVIDEO_API_KEY, FB_PAGE_ID, ...)."""
        return cls(
            apivideo_api_key=env.get("APIVIDEO_API_KEY"),
            stream_mode=env.get("STREAM_MODE") or StreamMode.CREATE,
            apivideo_live_stream_id=env.get("APIVIDEO_LIVE_STREAM_ID"),
            enable_facebook_restream=env.get_bool("ENABLE_FACEBOOK_RESTREAM"),
            enable_youtube_restream=env.get_bool("ENABLE_YOUTUBE_RESTREAM"),
            fb_page_id=env.get("FB_PAGE_ID"),
            fb_user_token=env.get("FB_USER_TOKEN"),
            fb_app_id=env.get("FB_APP_ID"),
            fb_app_secret=env.get("FB_APP_SECRET"),
            yt_rtmp_url=env.get("YT_RTMP_URL"),
            yt_stream_key=env.get("YT_STREAM_KEY"),
        )


__all__ = ["RestreamConfig", "StreamMode"]

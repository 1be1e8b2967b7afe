"""Configuration checks run before any provider call."""

from loguru import logger

from restreamer.schemas import RestreamConfig
from restreamer.utils.app_errors import ConfigurationIncompleteError

PLATFORM_FACEBOOK = "facebook"
PLATFORM_YOUTUBE = "youtube"

# Fixed provisioning order: the social broadcast first, then static endpoints
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    PLATFORM_FACEBOOK: ("fb_page_id", "fb_user_token"),
    PLATFORM_YOUTUBE: ("yt_rtmp_url", "yt_stream_key"),
}

_PLATFORM_TITLES = {PLATFORM_FACEBOOK: "Facebook", PLATFORM_YOUTUBE: "Youtube"}


def enabled_platforms(config: RestreamConfig) -> list[str]:
    enabled = {
        PLATFORM_FACEBOOK: config.enable_facebook_restream,
        PLATFORM_YOUTUBE: config.enable_youtube_restream,
    }
    return [platform for platform in REQUIRED_FIELDS if enabled[platform]]


def validate_restream_config(config: RestreamConfig) -> list[str]:
    """Check the primary key and every enabled destination's required fields.

    Returns:
        Enabled platforms in provisioning order (may be empty)

    Raises:
        ConfigurationIncompleteError: Naming the first missing field
    """
    if not config.apivideo_api_key:
        raise ConfigurationIncompleteError(
            "api.video API key is required. Please configure the module first.",
            field="apivideo_api_key",
        )

    platforms = enabled_platforms(config)
    for platform in platforms:
        for field in REQUIRED_FIELDS[platform]:
            if not getattr(config, field):
                title = _PLATFORM_TITLES[platform]
                logger.warning(f"Missing required {title} configuration field: {field}")
                raise ConfigurationIncompleteError(
                    f"Missing required {title} configuration: {field}", field=field
                )
    return platforms

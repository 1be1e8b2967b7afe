"""Restream destination list helpers."""

from restreamer.schemas.restream import RestreamDestination

FACEBOOK_LABEL = "Facebook Live"
YOUTUBE_LABEL = "Youtube Live"

KNOWN_PLATFORMS = ("facebook", "youtube")


def platform_of(label: str) -> str:
    """Platform a destination label belongs to ("Facebook Live" -> "facebook")."""
    lowered = label.strip().lower()
    for platform in KNOWN_PLATFORMS:
        if platform in lowered:
            return platform
    return lowered


def merge_restream_destination(
    destinations: list[RestreamDestination],
    new: RestreamDestination,
) -> list[RestreamDestination]:
    """Return destinations with every entry for new's platform replaced by new.

    Order of the remaining entries is preserved and new goes last, so applying
    the same destination twice gives the same list.
    """
    platform = platform_of(new.label)
    kept = [d for d in destinations if platform_of(d.label) != platform]
    return [*kept, new]

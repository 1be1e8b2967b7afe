"""Ingest URL parsing.

Facebook hands out ingest URLs such as
``rtmps://live-api-s.facebook.com:443/rtmp/FB-123-0-Abc?s_bl=1&s_ps=1``. The
part up to and including the host is the server URL; the rest is the stream
key once the ``rtmp/`` marker and the query string are removed.
"""

import re

from restreamer.schemas.restream import IngestEndpoint
from restreamer.utils.app_errors import MalformedIngestUrlError

RTMP_URL_PATTERN = re.compile(r"^(rtmps?://[^/]+/)(.+)$")
RTMP_KEY_MARKER = "rtmp/"


def parse_rtmp_url(rtmp_url: str) -> IngestEndpoint:
    """Split an RTMP(S) URL into server URL and raw trailing path.

    Raises:
        MalformedIngestUrlError: If the URL does not look like rtmp(s)://host/path
    """
    match = RTMP_URL_PATTERN.match(rtmp_url or "")
    if not match:
        raise MalformedIngestUrlError(f"Invalid RTMP URL format: {rtmp_url!r}")
    return IngestEndpoint(server_url=match.group(1), stream_key=match.group(2))


def canonical_stream_key(raw_key: str) -> str:
    """Strip the rtmp/ marker and any query string; other keys pass through untouched."""
    if raw_key.startswith(RTMP_KEY_MARKER):
        return raw_key[len(RTMP_KEY_MARKER):].split("?", 1)[0]
    return raw_key


def parse_ingest_url(ingest_url: str) -> IngestEndpoint:
    """Derive the canonical ingest endpoint from a provider ingest URL.

    Example:
        >>> parse_ingest_url("rtmps://host/rtmp/KEY123?ts=1")
        IngestEndpoint(server_url='rtmps://host/', stream_key='KEY123')
    """
    raw = parse_rtmp_url(ingest_url)
    stream_key = canonical_stream_key(raw.stream_key)
    if not stream_key:
        raise MalformedIngestUrlError(f"Ingest URL carries no stream key: {ingest_url!r}")
    return IngestEndpoint(server_url=raw.server_url, stream_key=stream_key)


def key_from_stream_url(stream_url: str | None) -> str | None:
    """Alternate key form: the last path segment of the non-secure stream_url."""
    if not stream_url:
        return None
    return stream_url.rstrip("/").split("/")[-1] or None

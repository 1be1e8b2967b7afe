"""Small helpers shared by services."""


def mask_secret(value: str | None, visible: int = 6) -> str:
    """Shorten a token or stream key for log output."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"

from datetime import date

# Norwegian month names, as shown to the broadcast team
MONTH_NAMES = (
    "januar",
    "februar",
    "mars",
    "april",
    "mai",
    "juni",
    "juli",
    "august",
    "september",
    "oktober",
    "november",
    "desember",
)


def generate_stream_name(today: date | None = None) -> str:
    """Stream name for the given day, e.g. "Live - 01.oktober.25"."""
    today = today or date.today()
    return f"Live - {today.day:02d}.{MONTH_NAMES[today.month - 1]}.{today.year % 100:02d}"

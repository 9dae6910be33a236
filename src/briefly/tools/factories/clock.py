"""Clock lookup tool factory."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from loguru import logger
from republic import Tool, tool_from_model

from briefly.tools.factories.shared import ClockInput

TIMEZONE_TABLE: dict[str, str] = {
    "new york": "America/New_York",
    "los angeles": "America/Los_Angeles",
    "chicago": "America/Chicago",
    "london": "Europe/London",
    "paris": "Europe/Paris",
    "berlin": "Europe/Berlin",
    "tokyo": "Asia/Tokyo",
    "singapore": "Asia/Singapore",
    "dubai": "Asia/Dubai",
    "sydney": "Australia/Sydney",
    "nigeria": "Africa/Lagos",
    "lagos": "Africa/Lagos",
    "nairobi": "Africa/Nairobi",
}


def format_local_time(moment: datetime) -> str:
    """Format like ``Friday, October 17, 2026 at 3:04:05 PM EDT``."""
    hour = moment.strftime("%I").lstrip("0") or "12"
    return (
        f"{moment.strftime('%A, %B')} {moment.day}, {moment.year} "
        f"at {hour}:{moment.strftime('%M:%S %p')} {moment.strftime('%Z')}"
    )


def lookup_time(location: str, *, now: Callable[[], datetime] | None = None) -> str:
    key = " ".join(location.casefold().split())
    zone_name = TIMEZONE_TABLE.get(key)
    if zone_name is None:
        return (
            f"I'm sorry, I don't have the exact timezone information for {location}. "
            "I can only provide time for major cities."
        )
    try:
        current = now() if now is not None else datetime.now(UTC)
        return format_local_time(current.astimezone(ZoneInfo(zone_name)))
    except Exception:
        logger.exception("tool.clock.error location={}", location)
        return f"I encountered an error trying to get the time for {location}."


def create_clock_tool(*, now: Callable[[], datetime] | None = None) -> Tool:
    """Create the clock lookup tool. *now* must return an aware datetime."""

    def _handler(params: ClockInput) -> str:
        return lookup_time(params.location, now=now)

    return tool_from_model(
        ClockInput,
        _handler,
        name="clock.now",
        description=(
            "Gets the current time for a specified location. Use this when the user asks for the "
            "current time, date, or day in a city or country."
        ),
    )

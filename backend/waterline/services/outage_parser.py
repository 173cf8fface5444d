"""Outage page text → structured outage records.

The page lists one notice per "Information |" heading, e.g.

    Information | BRIDGELAND/RIVERSIDE community (updated April 29, 2025 11:34 AM)
    Priority: Emergency
    The current status is: Repair in Progress
    Specific repair location: Ave NE
    Repair to be completed by: May 1, 2025

Each field is extracted on its own; a missing marker leaves that field empty
and never affects the others. Only the first occurrence of a marker counts.
"""

import logging
import re
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from waterline.config import settings
from waterline.schemas.outage import ParsedOutage

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "Information |"

_COMMUNITY_PATTERN = re.compile(
    r"^([^(]+?)\s+community\s+\(updated\s+([^)]+)\)", re.IGNORECASE
)
_PRIORITY_PATTERN = re.compile(r"Priority:[ \t]*([^\n]+)", re.IGNORECASE)
_STATUS_PATTERN = re.compile(r"The current status is:[ \t]*([^\n]+)", re.IGNORECASE)
_LOCATION_PATTERN = re.compile(r"Specific repair location:[ \t]*([^\n]+)", re.IGNORECASE)
_COMPLETION_PATTERN = re.compile(r"Repair to be completed by:[ \t]*([^\n]+)", re.IGNORECASE)
# Free text up to whichever known marker follows, or the end of the block
_WATER_WAGON_PATTERN = re.compile(
    r"Water wagon:(.*?)(?=Priority:|The current status is:|Specific repair location:"
    r"|Repair to be completed by:|\Z)",
    re.IGNORECASE | re.DOTALL,
)

_DATE_FORMATS = (
    "%B %d, %Y %I:%M %p",
    "%B %d, %Y, %I:%M %p",
    "%B %d, %Y at %I:%M %p",
    "%B %d, %Y %I %p",
    "%b %d, %Y %I:%M %p",
    "%b %d, %Y, %I:%M %p",
    "%b %d, %Y %I %p",
    "%B %d, %Y %H:%M",
    "%Y-%m-%d %H:%M",
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d",
)
_MERIDIEM_PATTERN = re.compile(r"\b([ap])\.?\s?m\.?(?=\s|$)", re.IGNORECASE)
_GLUED_MERIDIEM_PATTERN = re.compile(r"(\d)([ap]m)\b", re.IGNORECASE)


def split_blocks(text: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """Split page text into per-outage blocks, dropping everything before the first delimiter."""
    if not text:
        return []
    return [block.strip() for block in text.split(delimiter)[1:]]


def extract_community(block: str) -> tuple[str, str] | None:
    """Return (community, updated_time) from the block heading, or None."""
    match = _COMMUNITY_PATTERN.search(block)
    if not match:
        return None
    return match.group(1).strip(), match.group(2).strip()


def _first(pattern: re.Pattern, block: str) -> str | None:
    match = pattern.search(block)
    if not match:
        return None
    return match.group(1).strip()


def extract_priority(block: str) -> str | None:
    return _first(_PRIORITY_PATTERN, block)


def extract_current_status(block: str) -> str | None:
    return _first(_STATUS_PATTERN, block)


def extract_repair_location(block: str) -> str | None:
    return _first(_LOCATION_PATTERN, block)


def extract_repair_completion(block: str) -> str | None:
    return _first(_COMPLETION_PATTERN, block)


def extract_water_wagon(block: str) -> str | None:
    value = _first(_WATER_WAGON_PATTERN, block)
    if value is None:
        return None
    return " ".join(value.split())


def _clean_timestamp(text: str) -> str:
    text = " ".join(text.replace("Sept.", "Sep.").replace("Sept ", "Sep ").split())
    text = _MERIDIEM_PATTERN.sub(lambda m: m.group(1).upper() + "M", text)
    text = _GLUED_MERIDIEM_PATTERN.sub(lambda m: f"{m.group(1)} {m.group(2).upper()}", text)
    # "Apr. 29, 2025" → "Apr 29, 2025"
    return re.sub(r"^([A-Za-z]{3,9})\.", r"\1", text).rstrip(".")


def parse_updated_date(text: str, tz: tzinfo | None = None) -> datetime | None:
    """Best-effort parse of a published timestamp. None means unparsed; never raises."""
    if not text:
        return None
    cleaned = _clean_timestamp(text)
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=tz or _source_tz())
    logger.debug("Unparseable outage timestamp: %r", text)
    return None


def _source_tz() -> tzinfo:
    return ZoneInfo(settings.outage_source_timezone)


def parse_block(block: str, tz: tzinfo | None = None) -> ParsedOutage:
    block = block.strip()
    community, updated_time = extract_community(block) or ("", "")
    return ParsedOutage(
        community=community,
        updated_time=updated_time,
        priority=extract_priority(block) or "",
        current_status=extract_current_status(block) or "",
        repair_location=extract_repair_location(block) or "",
        repair_completion=extract_repair_completion(block) or "",
        water_wagon_info=extract_water_wagon(block) or "",
        updated_date=parse_updated_date(updated_time, tz),
    )


def parse_outages(
    text: str,
    delimiter: str | None = None,
    tz: tzinfo | None = None,
) -> list[ParsedOutage]:
    """Parse every outage block in the page text, in page order."""
    blocks = split_blocks(text, delimiter or settings.outage_block_delimiter)
    tz = tz or _source_tz()
    outages = [parse_block(block, tz) for block in blocks]
    logger.info("Parsed %d outage blocks", len(outages))
    return outages

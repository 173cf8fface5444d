"""Validity and recency filtering of parsed outages before persistence."""

import logging
from datetime import datetime, timedelta

from waterline.config import settings
from waterline.schemas.outage import OutageRecord, ParsedOutage

logger = logging.getLogger(__name__)


def is_recent(
    updated_date: datetime | None,
    scrape_time: datetime,
    window_hours: float,
    inclusive: bool = True,
) -> bool:
    """True if updated_date falls inside the window. Unparsed dates (None) count as recent."""
    if updated_date is None:
        return True
    cutoff = scrape_time - timedelta(hours=window_hours)
    if inclusive:
        return updated_date >= cutoff
    return updated_date > cutoff


def normalize_outages(
    parsed: list[ParsedOutage],
    scrape_time: datetime,
    *,
    window_hours: float | None = None,
    inclusive: bool | None = None,
) -> list[OutageRecord]:
    """Drop records without a community or with a stale update, stamp scraped_at.

    scrape_time must be timezone-aware; parsed dates carry the source zone.
    """
    if window_hours is None:
        window_hours = settings.outage_recency_hours
    if inclusive is None:
        inclusive = settings.outage_recency_inclusive

    valid: list[OutageRecord] = []
    missing_community = stale = 0
    for outage in parsed:
        if not outage.community:
            missing_community += 1
            continue
        if not is_recent(outage.updated_date, scrape_time, window_hours, inclusive):
            stale += 1
            continue
        valid.append(OutageRecord(
            **outage.model_dump(exclude={"updated_date", "scraped_at"}),
            scraped_at=scrape_time,
        ))

    logger.info(
        "Normalized outages: %d parsed, %d valid (%d without community, %d stale)",
        len(parsed), len(valid), missing_community, stale,
    )
    return valid

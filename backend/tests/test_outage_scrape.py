"""Tests for the end-to-end scrape cycle with the page fetch patched out."""

import threading
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from waterline.models.outage import WaterOutage
from waterline.schemas.outage import OutageRecord
from waterline.services.outage_scrape import run_scrape_cycle
from waterline.services.outage_store import replace_outages
from waterline.services.page_text import PageFetchError

# 12:00 MDT
SCRAPE_TIME = datetime(2025, 4, 29, 18, 0, tzinfo=timezone.utc)

PAGE_TEXT = (
    "Water outages\n"
    "Information | BRIDGELAND/RIVERSIDE community (updated April 29, 2025 11:34 AM)\n"
    "Priority: Emergency\n"
    "The current status is: Repair in Progress\n"
    "Specific repair location: Ave NE\n"
    "Repair to be completed by: May 1, 2025\n"
    "Information | SUNNYSIDE community (updated April 27, 2025 8:00 AM)\n"
    "Priority: Scheduled\n"
    "Information | Service notice\n"
    "Priority: Low\n"
    "Information | CRESCENT HEIGHTS community (updated Tuesday morning)\n"
    "The current status is: Crew on site\n"
)


def _stored(session_factory) -> list[str]:
    with session_factory() as db:
        return sorted(db.scalars(select(WaterOutage.community)).all())


@pytest.mark.asyncio
async def test_scrape_cycle_filters_and_persists(session_factory):
    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(return_value=PAGE_TEXT),
    ):
        records = await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

    # SUNNYSIDE is stale, the service notice has no community,
    # CRESCENT HEIGHTS has an unparseable date and is kept
    assert [r.community for r in records] == ["BRIDGELAND/RIVERSIDE", "CRESCENT HEIGHTS"]
    assert all(r.scraped_at == SCRAPE_TIME for r in records)
    assert records[0].priority == "Emergency"
    assert _stored(session_factory) == ["BRIDGELAND/RIVERSIDE", "CRESCENT HEIGHTS"]


@pytest.mark.asyncio
async def test_fetch_failure_counts_as_empty_page(session_factory):
    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(return_value=PAGE_TEXT),
    ):
        await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(side_effect=PageFetchError("timeout")),
    ):
        records = await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

    assert records == []
    assert _stored(session_factory) == []


@pytest.mark.asyncio
async def test_records_returned_when_write_fails(session_factory):
    replace_outages(
        [OutageRecord(community="BOWNESS", scraped_at=SCRAPE_TIME)],
        session_factory=session_factory,
    )

    def unstorable_row(record):
        return WaterOutage(community="", scraped_at=SCRAPE_TIME.replace(tzinfo=None))

    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(return_value=PAGE_TEXT),
    ), patch("waterline.services.outage_store._to_row", side_effect=unstorable_row):
        records = await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

    assert len(records) == 2
    # Every insert failed, so the previous cycle's set survives
    assert _stored(session_factory) == ["BOWNESS"]


@pytest.mark.asyncio
async def test_store_write_runs_off_the_event_loop_thread(session_factory):
    write_threads = []

    def recording_replace(records, session_factory):
        write_threads.append(threading.get_ident())
        return records

    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(return_value=PAGE_TEXT),
    ), patch(
        "waterline.services.outage_scrape.outage_store.replace_outages",
        side_effect=recording_replace,
    ):
        records = await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

    assert len(records) == 2
    assert write_threads and write_threads[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_unexpected_errors_propagate(session_factory):
    with patch(
        "waterline.services.outage_scrape.page_text.fetch_page_text",
        AsyncMock(side_effect=RuntimeError("boom")),
    ):
        with pytest.raises(RuntimeError):
            await run_scrape_cycle(now=SCRAPE_TIME, session_factory=session_factory)

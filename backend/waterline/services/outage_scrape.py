"""One scrape cycle: fetch page → parse blocks → normalize → replace stored set."""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import sessionmaker

from waterline.config import settings
from waterline.database import SessionLocal
from waterline.schemas.outage import OutageRecord
from waterline.services import outage_store, page_text
from waterline.services.outage_normalizer import normalize_outages
from waterline.services.outage_parser import parse_outages

logger = logging.getLogger(__name__)


async def run_scrape_cycle(
    *,
    now: datetime | None = None,
    session_factory: sessionmaker = SessionLocal,
) -> list[OutageRecord]:
    """Run the full pipeline and return this cycle's valid records.

    A fetch failure counts as an empty page: the stored set is still replaced
    (with nothing). The returned list doesn't depend on the DB write succeeding.
    """
    scrape_time = now or datetime.now(timezone.utc)
    url = settings.outage_source_url
    logger.info("Starting water outage scrape of %s", url)

    try:
        text = await page_text.fetch_page_text(url)
    except page_text.PageFetchError as e:
        logger.warning("Outage page fetch failed, treating as no outages: %s", e)
        text = ""

    parsed = parse_outages(text)
    records = normalize_outages(parsed, scrape_time)
    # Blocking DB write and lock; keep it off the event loop
    await asyncio.to_thread(
        outage_store.replace_outages, records, session_factory=session_factory
    )

    logger.info("Water outage scrape complete: %d outages found", len(records))
    return records

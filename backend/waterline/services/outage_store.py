"""Persistence for scraped outages: full replace per cycle, recency-filtered reads."""

import logging
import threading
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from waterline.config import settings
from waterline.database import SessionLocal
from waterline.models.outage import WaterOutage
from waterline.schemas.outage import OutageRecord

logger = logging.getLogger(__name__)

# Manual and scheduled cycles share the table; never interleave delete/insert
_replace_lock = threading.Lock()


def _to_row(record: OutageRecord) -> WaterOutage:
    scraped_at = record.scraped_at or datetime.now(timezone.utc)
    return WaterOutage(
        community=record.community,
        updated_time=record.updated_time,
        priority=record.priority,
        current_status=record.current_status,
        repair_location=record.repair_location,
        repair_completion=record.repair_completion,
        water_wagon_info=record.water_wagon_info,
        # Stored as naive UTC
        scraped_at=scraped_at.astimezone(timezone.utc).replace(tzinfo=None),
    )


def _to_record(row: WaterOutage) -> OutageRecord:
    record = OutageRecord.model_validate(row)
    if record.scraped_at is not None and record.scraped_at.tzinfo is None:
        record.scraped_at = record.scraped_at.replace(tzinfo=timezone.utc)
    return record


def replace_outages(
    records: list[OutageRecord],
    session_factory: sessionmaker = SessionLocal,
) -> list[OutageRecord]:
    """Delete every stored outage and insert records, in one transaction.

    Each row gets its own savepoint, so a bad row is skipped without losing
    the rest. If the delete fails, or every insert fails, the transaction is
    rolled back and the previous set stays. Nothing is raised; records is
    returned whatever happened to the write.
    """
    with _replace_lock:
        db: Session = session_factory()
        try:
            deleted = db.execute(delete(WaterOutage)).rowcount

            inserted = failed = 0
            for record in records:
                try:
                    with db.begin_nested():
                        db.add(_to_row(record))
                except SQLAlchemyError as e:
                    failed += 1
                    logger.warning("Skipping outage %r: %s", record.community, e)
                else:
                    inserted += 1

            if records and not inserted:
                db.rollback()
                logger.error(
                    "All %d outage inserts failed, keeping previous set", len(records)
                )
                return records

            db.commit()
            logger.info(
                "Replaced stored outages: %d deleted, %d inserted, %d failed",
                deleted, inserted, failed,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to replace stored outages, keeping previous set: %s", e)
        finally:
            db.close()
    return records


def get_recent_outages(db: Session, since: datetime | None = None) -> list[OutageRecord]:
    """Stored outages scraped at or after since (default: the recency window)."""
    if since is None:
        since = datetime.now(timezone.utc) - timedelta(hours=settings.outage_recency_hours)
    since = since.astimezone(timezone.utc).replace(tzinfo=None)
    rows = db.scalars(
        select(WaterOutage)
        .where(WaterOutage.scraped_at >= since)
        .order_by(WaterOutage.community, WaterOutage.id)
    ).all()
    return [_to_record(row) for row in rows]

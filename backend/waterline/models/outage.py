from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from waterline.database import Base


class WaterOutage(Base):
    """One scraped outage notice. The whole table is replaced every scrape cycle."""
    __tablename__ = "water_outages"
    __table_args__ = (
        CheckConstraint("community <> ''", name="ck_water_outages_community"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    community = Column(String(200), nullable=False, index=True)
    updated_time = Column(String(100), default="")  # as published, not sortable
    priority = Column(String(100), default="")
    current_status = Column(String(255), default="")
    repair_location = Column(Text, default="")
    repair_completion = Column(String(255), default="")
    water_wagon_info = Column(Text, default="")
    scraped_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class OutageRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    community: str
    updated_time: str = ""
    priority: str = ""
    current_status: str = ""
    repair_location: str = ""
    repair_completion: str = ""
    water_wagon_info: str = ""
    scraped_at: datetime | None = None


class ParsedOutage(OutageRecord):
    """Parser output. updated_date is None when the published timestamp didn't parse."""
    updated_date: datetime | None = None


class WaterOutageResponse(BaseModel):
    content: str
    outages: list[OutageRecord] = []

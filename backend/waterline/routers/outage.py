import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from waterline.database import get_db
from waterline.schemas.outage import OutageRecord, WaterOutageResponse
from waterline.services.outage_scrape import run_scrape_cycle
from waterline.services.outage_store import get_recent_outages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wateroutage", tags=["outages"])

NO_OUTAGES_MESSAGE = "No recent water outage data available."


@router.get("", response_model=WaterOutageResponse)
async def list_outages(db: Session = Depends(get_db)):
    """Get the outages stored by the latest scrape cycle."""
    try:
        outages = get_recent_outages(db)
    except Exception as e:
        logger.error("Failed to read stored water outages: %s", e)
        body = WaterOutageResponse(content=f"Failed to load water outage data: {e}", outages=[])
        return JSONResponse(status_code=500, content=body.model_dump(mode="json", by_alias=True))

    if not outages:
        return WaterOutageResponse(content=NO_OUTAGES_MESSAGE, outages=[])
    noun = "outage" if len(outages) == 1 else "outages"
    return WaterOutageResponse(
        content=f"{len(outages)} active water {noun} reported.",
        outages=outages,
    )


@router.get("/scrape", response_model=list[OutageRecord])
async def trigger_scrape():
    """Manually run one scrape cycle and return what it found."""
    try:
        return await run_scrape_cycle()
    except Exception as e:
        logger.error("Manual water outage scrape failed: %s", e)
        return JSONResponse(status_code=500, content={"error": f"Scraping failed: {e}"})

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from waterline.config import settings
from waterline.database import init_db

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    from waterline.services.outage_scrape import run_scrape_cycle
    from waterline.tasks.scheduler import ScrapeScheduler
    scheduler = ScrapeScheduler(
        job=run_scrape_cycle,
        interval_minutes=settings.outage_scrape_interval,
    )
    app.state.scrape_scheduler = scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    yield
    scheduler.stop()


app = FastAPI(
    title="Waterline",
    description="Water main break and outage feed for the water-infrastructure dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from waterline.routers import outage  # noqa: E402

app.include_router(outage.router, prefix="/api")


@app.get("/health")
async def health(request: Request):
    scheduler = getattr(request.app.state, "scrape_scheduler", None)
    return {
        "status": "ok",
        "scheduler_running": bool(scheduler is not None and scheduler.running),
    }


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run("waterline.main:app", host=settings.host, port=settings.port)

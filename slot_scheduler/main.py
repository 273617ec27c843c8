import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slot_scheduler import __version__
from slot_scheduler.api import availability, batches, catalog, directory, preferences, schedule, timezone
from slot_scheduler.database import init_db
from slot_scheduler.services.catalog import get_catalog
from slot_scheduler.services.timezone import reference_zone
from slot_scheduler.settings import configure_logging, get_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Slot Scheduler API")


@app.on_event("startup")
def on_startup():
    settings = get_settings()
    configure_logging(settings.log_level)
    # Fail fast on a bad reference zone or catalog rather than on the first request
    zone = reference_zone()
    get_catalog()
    init_db()
    logger.info("Slot scheduler started (reference timezone %s)", zone.key)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router, prefix="/api")
app.include_router(timezone.router, prefix="/api")
app.include_router(availability.router, prefix="/api")
app.include_router(schedule.router, prefix="/api")
app.include_router(batches.router, prefix="/api")
app.include_router(preferences.router, prefix="/api")
app.include_router(directory.router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    uvicorn.run("slot_scheduler.main:app", host="127.0.0.1", port=get_settings().port, reload=True)

import logging
from pathlib import Path
from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.api.endpoints import telegram, status
from app.db.session import engine
from app.models.quote import Base
from app.services.scheduler_service import start_scheduler, stop_scheduler
from app.services.storage_service import storage

logger = logging.getLogger(__name__)


def init_storage():
    """Create the data directory and the quotes table. Failures leave the app running degraded."""
    storage.ensure_dir()
    try:
        if engine.url.get_backend_name() == "sqlite" and engine.url.database:
            Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - storage setup and scheduler start/stop."""
    init_storage()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title="Quote Keeper API", version="0.3.0", lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Quote Keeper API is online 📷"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

# Include routers
app.include_router(telegram.router, prefix="/api/v1/telegram", tags=["telegram"])
app.include_router(status.router, prefix="/api/v1", tags=["status"])

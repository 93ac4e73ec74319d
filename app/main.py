import asyncio
import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.api.v1.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


async def _reservation_sweep_loop(interval: int) -> None:
    """Background task: complete past confirmed reservations every `interval` seconds."""
    from app.utils.reservations import complete_past_reservations

    while True:
        try:
            db = SessionLocal()
            try:
                count = complete_past_reservations(db)
                if count:
                    logger.info("Completed %d past reservation(s).", count)
            finally:
                db.close()
        except Exception:
            logger.exception("Error during reservation sweep.")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    init_db()

    sweep_task = None
    if settings.RESERVATION_SWEEP_INTERVAL_SECONDS > 0:
        sweep_task = asyncio.create_task(
            _reservation_sweep_loop(settings.RESERVATION_SWEEP_INTERVAL_SECONDS)
        )
    yield

    # Shutdown: cancel background task
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"service": settings.PROJECT_NAME}

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.v1 import api_router
from marketplace.core.config import settings
from marketplace.core.database import Base, SessionLocal, engine
from marketplace.core.exceptions import PenaltyError
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.models import registry  # noqa: F401
from marketplace.services.notification_service import NotificationService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def seed_violation_types():
    db = SessionLocal()
    try:
        ViolationTypeService.initialize_violation_types(db, overwrite_existing=False)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database tables ready")
    if settings.SEED_VIOLATION_TYPES_ON_STARTUP:
        seed_violation_types()
    NotificationService.initialize()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Penalty points, appeals and access restrictions for the services marketplace",
    version="1.0.0",
    lifespan=lifespan,
)

# restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PenaltyError)
async def penalty_error_handler(request: Request, exc: PenaltyError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

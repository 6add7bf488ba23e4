import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from config import CORS_ORIGINS, LOG_LEVEL
from db import init_db
from deps.engine import get_controller
from outcomes import ErrorCode, Outcome, OutcomeError
from routers.common import envelope

# Routers
from routers.admin import router as admin_router
from routers.assessments import router as assessments_router
from routers.health import router as health_router
from sweep import schedule_sweep

logger = logging.getLogger("assessment-engine")
logging.basicConfig(
    level=LOG_LEVEL,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    stop = schedule_sweep(get_controller())
    yield
    if stop is not None:
        stop.set()


app = FastAPI(title="Assessment Lifecycle Engine", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "x-api-key", "x-admin-token", "x-participant-id"],
)


@app.exception_handler(SQLAlchemyError)
async def storage_failure(request: Request, exc: SQLAlchemyError):
    logger.error("storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return envelope(Outcome.failure(ErrorCode.INTERNAL_ERROR, "Storage unavailable, retry."))


@app.exception_handler(OutcomeError)
async def outcome_error(request: Request, exc: OutcomeError):
    return envelope(exc.outcome)


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(assessments_router)  # /assessments/..., /submissions/mine
app.include_router(admin_router)  # /admin/...
app.include_router(health_router)  # /health/...

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from .config import settings
from .database import init_db
from .exceptions import LeagueError, Unavailable
from .routers import auth, leagues, results, rounds, submissions, votes
from .services.allocation import AllocationRegistry

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="API for running theme rounds, submissions and budgeted voting",
    version="1.0.0",
)
app.state.allocations = AllocationRegistry()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(leagues.router)
app.include_router(rounds.router)
app.include_router(submissions.router)
app.include_router(votes.router)
app.include_router(results.router)


@app.exception_handler(LeagueError)
def league_error_handler(request: Request, exc: LeagueError):
    headers = None
    if isinstance(exc, Unavailable):
        headers = {"Retry-After": str(settings.retry_after_seconds)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(OperationalError)
def store_error_handler(request: Request, exc: OperationalError):
    logger.error(f"Store unavailable on {request.url.path}: {exc}")
    return league_error_handler(request, Unavailable())


@app.on_event("startup")
def on_startup():
    init_db()


@app.get("/")
def root():
    return {"message": "Theme League API is running"}

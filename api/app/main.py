# api/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.app.config import get_settings
from api.app.middleware.request_logging import RequestLoggingMiddleware
from api.app.routes import github, health, jobs, titles, users
from db.engine import dispose_engine

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Issue Forge API starting")
    yield
    await dispose_engine()


app = FastAPI(
    title="Issue Forge API",
    description="Queue, generate and publish GitHub issues in the background",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router)
app.include_router(jobs.router, prefix="/v1")
app.include_router(users.router, prefix="/v1")
app.include_router(titles.router, prefix="/v1")
app.include_router(github.router, prefix="/v1")


def run() -> None:
    settings = get_settings()
    uvicorn.run("api.app.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()

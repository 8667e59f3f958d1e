# -*- coding: utf-8 -*-
"""
Slingo API

Meal photo analysis, meal log and the self-adjusting daily calorie goal.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .diet.api import router as diet_router
from .goals.api import router as goals_router

logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

app = FastAPI(
    title="Slingo",
    description="Meal photo analysis and automatic calorie goal adjustment",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(diet_router)
app.include_router(goals_router)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/", include_in_schema=False)
def root() -> dict[str, str]:
    return {"message": "Slingo API", "docs": "/api/docs"}


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("SLINGO_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("SLINGO_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("slingo.api:app", host=host, port=port, reload=False)

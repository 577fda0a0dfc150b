"""
Lead Relay - webhook ingestion into Kommo, Notion and Meta
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import deps
from app.core.config import settings
from app.core.logging import configure_logging
from app.middleware.request_logging import RequestLoggingMiddleware
from app.api.v1 import webhooks, intake, sources, mappings, logs, config

configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await deps.shutdown()


app = FastAPI(
    title="Lead Relay API",
    description="Receives lead webhooks, maps them per source and relays them to the CRM",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Public routes
app.include_router(webhooks.router, prefix="/inbound", tags=["inbound"])
app.include_router(intake.router, tags=["intake"])

# Admin routes
app.include_router(sources.router, prefix="/api/sources", tags=["sources"])
app.include_router(mappings.router, prefix="/api/mappings", tags=["mappings"])
app.include_router(logs.router, prefix="/api/logs", tags=["logs"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }

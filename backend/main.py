"""
SchoolScores - Assessment Result Analytics
FastAPI backend entry point.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment before route modules read their settings
load_dotenv()

from routes.charts import router as charts_router, GRID_STEPS, INDEX_MARKERS  # noqa: E402
from routes.dashboard import router as dashboard_router  # noqa: E402

APP_NAME = os.getenv("APP_NAME", "SchoolScores")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="SchoolScores API",
    description=(
        "Standardized-test results per school - grouped, scaled chart series "
        "and dashboard KPIs."
    ),
    version="1.0.0",
)

# CORS - allow the React dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(charts_router, prefix="/api/charts", tags=["Charts"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "app_name": APP_NAME,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    return {
        "app_name": APP_NAME,
        "index_markers": INDEX_MARKERS,
        "grid_steps": GRID_STEPS,
    }

"""
FastAPI application for survey answer analysis and usage tracking.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from readiness_analytics.api.routes.llm_analysis import router as llm_analysis_router  # noqa: E402
from readiness_analytics.database import create_tables  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not create_tables():
        logger.warning("Database unavailable; batch history and usage alerts are degraded")
    yield


# Initialize FastAPI
app = FastAPI(
    title="Readiness Analytics API",
    description="Batch qualitative analysis of survey answers with usage accounting.",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(llm_analysis_router)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "readiness-analytics"}

"""
LiaHub - Main Application

FastAPI backend with:
- MongoDB for users, school records, organizations and notifications
- JWT authentication with role -> permission checks
- Role-scoped dashboard tables and the LIA assignment workflow

Run: uvicorn liahub.main:app --reload
"""

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from liahub.api.routes import api_router
from liahub.core.config import get_settings
from liahub.core.logging import configure_logging, get_logger
from liahub.db.mongodb import init_mongo_indexes, test_mongo_connection

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="LiaHub",
    description="""
    Recruiting and networking platform for LIA (internship) placements.

    ## Features
    - **Authentication**: JWT-based auth for students, schools, universities and companies
    - **Dashboard**: role-scoped tables (students, teachers, companies, ...)
    - **Assignments**: schools propose students, companies confirm or reject
    - **Users**: profile updates and admin status toggles
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return response


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    logger.info("starting_liahub", version="1.0.0")
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.error("mongo_index_init_failed", error=str(e))


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected",
    }

"""
Road Report Engine - FastAPI Application

Main entry point for the road issue reporting backend.

Architecture:
- Submission → DuplicateDetector → PriorityScorer → ReportLifecycleService
- Confirmation → ReputationLedger (priority recompute + points)
- Status change → ReportLifecycleService (append-only status ledger)
- Scheduler → EscalationSweeper (orthogonal escalated flag)
- Read views → ReportQueryService
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import reports_router, users_router, scheduler_router
from .database import init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Road Report Engine",
    description="""
    Road Report Engine - Citizen Road Issue Aggregation & Triage

    Citizens submit geotagged road issues; staff triage them.

    ## Pipeline
    1. **Duplicate Detector**: reports within 50 m form a cluster
    2. **Priority Scorer**: cluster size + confirmations → Low / Medium / High
    3. **Lifecycle Manager**: status changes with an append-only history
    4. **Escalation Sweeper**: flags reports Pending for 7+ days
    5. **Confirmation Ledger**: one confirmation per user per report, +5 points

    ## Key Principles
    - Every write is one transaction; no partial state is observable
    - Status history is never edited
    - Derived values (priority, badges) are reproducible from stored counters
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(reports_router)
app.include_router(users_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Road Report Engine",
        "version": "1.0.0",
        "description": "Citizen Road Issue Aggregation & Triage",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)

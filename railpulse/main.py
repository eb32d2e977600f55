from fastapi import FastAPI, HTTPException, Depends, Request, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from typing import List, Optional
import logging
import time

from .config import settings
from .database import get_db, engine as db_engine, Base
from .engine import DssEngine, EngineConfig, configured
from .errors import DssError, SuggestionNotFoundError
from .schedule import get_default_schedule
from .schemas import (
    Snapshot, SessionState, SessionTimeUpdate,
    RecommendationBatch, RecommendationBatchResponse, RecommendationRecord,
    OverrideCreate, OverrideRecord
)
from .providers import KpiAggregator, DashboardKpiAggregator, WindowKpiAggregator
from .simulation import DashboardSession
from .middleware import LoggingMiddleware
from .metrics import record_request_metrics, record_snapshot_metrics, record_webhook_metrics, get_metrics
from .utils import parse_instant, format_clock_time
from . import crud

# Create tables
Base.metadata.create_all(bind=db_engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Platform-conflict decision support for the RailPulse corridor dashboard",
    version=settings.VERSION
)

app.add_middleware(LoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Dashboard clock is shown in Indian Standard Time
IST = timezone(timedelta(hours=5, minutes=30))

KPI_AGGREGATORS = {
    "dashboard": DashboardKpiAggregator,
    "window": WindowKpiAggregator,
}

def kpi_aggregator_for(source: str) -> KpiAggregator:
    if source not in KPI_AGGREGATORS:
        raise ValueError(f"Unknown KPI source: {source}")
    return KPI_AGGREGATORS[source]()

_engine: Optional[DssEngine] = None
_session: Optional[DashboardSession] = None

def get_engine() -> DssEngine:
    global _engine
    if _engine is None:
        config = EngineConfig(
            illustrative_examples=settings.DSS_ILLUSTRATIVE_EXAMPLES,
            random_seed=settings.DSS_RANDOM_SEED
        )
        _engine = DssEngine(
            schedule=get_default_schedule(settings.SCHEDULE_PATH),
            config=config,
            kpi_aggregator=kpi_aggregator_for(settings.DSS_KPI_SOURCE)
        )
    return _engine

def get_session(dss: DssEngine = Depends(get_engine)) -> DashboardSession:
    global _session
    if _session is None:
        _session = DashboardSession(
            dss,
            simulation_date=settings.SIMULATION_DATE,
            clock=format_clock_time(datetime.now(IST)),
            tick_minutes=settings.TICK_MINUTES
        )
    return _session

def _session_state(session: DashboardSession) -> SessionState:
    return SessionState(time=session.clock, snapshot=session.snapshot)

def _timed(session_call):
    start_time = time.perf_counter()
    snapshot = session_call()
    record_snapshot_metrics(snapshot, time.perf_counter() - start_time)
    return snapshot

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    record_request_metrics(
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
        duration=process_time
    )

    response.headers["X-Process-Time"] = str(process_time)
    return response

@app.get("/")
async def root():
    return {"message": "RailPulse DSS Engine", "version": settings.VERSION}

@app.get("/health")
async def health_check(dss: DssEngine = Depends(get_engine)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "service": "dss-engine",
        "version": settings.VERSION,
        "engine_ready": dss.is_ready(),
        "schedule_entries": len(dss.schedule)
    }

@app.get("/snapshot", response_model=Snapshot)
def get_snapshot(
    clock: Optional[str] = Query(None, alias="time", description="HH:MM on the simulation day"),
    at: Optional[str] = Query(None, description="ISO-8601 instant, takes precedence over time"),
    seed: Optional[int] = Query(None, description="Seed for reproducible synthesized values"),
    dss: DssEngine = Depends(get_engine)
):
    """Compute a one-off snapshot without touching the dashboard session"""
    try:
        now = parse_instant(at, clock, settings.SIMULATION_DATE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    config = configured(dss.config, random_seed=seed) if seed is not None else None
    try:
        return _timed(lambda: dss.compute_snapshot(now, config=config))
    except DssError as e:
        logger.error(f"Snapshot computation failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Snapshot computation failed: {str(e)}")

@app.get("/session", response_model=SessionState)
def get_session_state(session: DashboardSession = Depends(get_session)):
    return _session_state(session)

@app.post("/session/time", response_model=SessionState)
def set_session_time(update: SessionTimeUpdate, session: DashboardSession = Depends(get_session)):
    try:
        _timed(lambda: session.set_time(update.time))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_state(session)

@app.post("/session/tick", response_model=SessionState)
def tick_session(session: DashboardSession = Depends(get_session)):
    """Advance the simulated clock by one dashboard tick"""
    _timed(session.advance)
    return _session_state(session)

@app.post("/session/suggestions/{suggestion_id}/accept", response_model=SessionState)
def accept_suggestion(suggestion_id: str, session: DashboardSession = Depends(get_session)):
    try:
        session.accept(suggestion_id)
    except SuggestionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _session_state(session)

@app.post("/session/suggestions/{suggestion_id}/reject", response_model=SessionState)
def reject_suggestion(suggestion_id: str, session: DashboardSession = Depends(get_session)):
    try:
        session.reject(suggestion_id)
    except SuggestionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _session_state(session)

@app.post("/webhook/recommendations", response_model=RecommendationBatchResponse)
def receive_recommendations(batch: RecommendationBatch, db: Session = Depends(get_db)):
    """Receive externally computed recommendations and upsert them by train"""
    logger.info(f"Received {len(batch.recommendations)} recommendations from DSS engine")
    try:
        result = crud.upsert_recommendations(db, batch.recommendations)
    except Exception as e:
        logger.error(f"Error storing recommendations: {str(e)}")
        raise HTTPException(status_code=500, detail="Could not store recommendations")

    record_webhook_metrics(result["stored"], result["skipped"])
    return RecommendationBatchResponse(
        message="Recommendations processed successfully.",
        stored=result["stored"],
        skipped=result["skipped"]
    )

@app.get("/recommendations", response_model=List[RecommendationRecord])
def list_recommendations(db: Session = Depends(get_db)):
    return crud.list_recommendations(db)

@app.get("/recommendations/{train_id}", response_model=RecommendationRecord)
def get_recommendation(train_id: str, db: Session = Depends(get_db)):
    rec = crud.get_recommendation(db, train_id)
    if rec is None:
        raise HTTPException(status_code=404, detail=f"No recommendation for train {train_id}")
    return rec

@app.post("/overrides", response_model=OverrideRecord, status_code=201)
def log_override(override: OverrideCreate, db: Session = Depends(get_db)):
    """Log a controller overriding a recommended action"""
    try:
        record = crud.create_override(db, override)
    except Exception as e:
        logger.error(f"Error logging override: {str(e)}")
        raise HTTPException(status_code=500, detail="Could not log override")

    logger.info(f"Override logged for train {record.train_id} by controller {record.controller_id}")
    return record

@app.get("/overrides", response_model=List[OverrideRecord])
def list_overrides(train_id: Optional[str] = None, db: Session = Depends(get_db)):
    return crud.list_overrides(db, train_id)

@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)

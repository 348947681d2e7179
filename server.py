import asyncio
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from catalog import EventCatalog
from config import (
    ConfigurationError,
    EventInstance,
    Plan,
    Schema,
    SimulationSample,
    UnknownEventType,
    load_config_from_json,
    load_plan,
    load_schema,
)
from constants import DEFAULT_HORIZON_DAYS, DEFAULT_SAMPLE_INTERVAL_DAYS, DEFAULT_SCHEMA_FILENAME
from simulation import run_simulation
from utils import split_by_envelope

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), DEFAULT_SCHEMA_FILENAME)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class SeriesPoint(BaseModel):
    date: int
    value: float


class SimulationResponse(BaseModel):
    start_day: int
    end_day: int
    sample_interval_days: int
    adjusted_for_inflation: bool
    samples: List[SimulationSample]
    series: Dict[str, List[SeriesPoint]]
    flagged_samples: int


class ValidationResponse(BaseModel):
    valid: bool
    events: int
    envelopes: int


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class PlanRequest(BaseModel):
    plan: Dict[str, Any] = Field(..., description="Plan document (envelopes and events).")
    event_schema: Optional[Dict[str, Any]] = Field(
        None,
        alias="schema",
        description="Event schema document. The bundled event_schema.json is used when omitted.",
    )

    model_config = {"validate_by_name": True}


class SimulationRequest(PlanRequest):
    start_day: int = Field(0, ge=0)
    end_day: int = Field(DEFAULT_HORIZON_DAYS, ge=0)
    sample_interval_days: int = Field(DEFAULT_SAMPLE_INTERVAL_DAYS, gt=0)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level="INFO",
        colorize=True,
    )
    logger.add(
        "server.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        level="INFO",
        rotation="10 MB",
    )


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(_app: FastAPI):
    _configure_logging()
    logger.info("Financial Event Simulator API starting up")
    yield
    logger.info("Financial Event Simulator API shutting down")


app = FastAPI(
    title="Financial Event Simulator API",
    description="Backend API for validating financial plans and returning simulated envelope balances.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _default_schema_document() -> Dict[str, Any]:
    if not os.path.exists(SCHEMA_PATH):
        raise HTTPException(status_code=404, detail=f"Default {DEFAULT_SCHEMA_FILENAME} not found.")
    try:
        return load_config_from_json(SCHEMA_PATH)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _parse(body: PlanRequest) -> Tuple[Plan, Schema]:
    schema_doc = body.event_schema if body.event_schema is not None else _default_schema_document()
    try:
        return load_plan(body.plan), load_schema(schema_doc)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _run_simulation(plan: Plan, schema: Schema, start_day: int, end_day: int, interval: int) -> dict:
    """Synchronous engine run -- called via ``asyncio.to_thread``."""
    samples = run_simulation(plan, schema, start_day, end_day, interval)
    series = {
        name: [{"date": d, "value": round(v, 2)} for d, v in points]
        for name, points in split_by_envelope(samples).items()
    }
    return {
        "start_day": start_day,
        "end_day": end_day,
        "sample_interval_days": interval,
        "adjusted_for_inflation": plan.adjust_for_inflation,
        "samples": samples,
        "series": series,
        "flagged_samples": sum(1 for s in samples if s.flagged),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/schema/default")
async def get_default_schema():
    """Return the bundled ``event_schema.json``."""
    return _default_schema_document()


@app.get("/api/events")
async def list_event_types():
    """Event types the bundled schema defines and the engine can simulate."""
    try:
        catalog = EventCatalog(load_schema(_default_schema_document()))
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"types": catalog.types}


@app.get("/api/events/{event_type}/defaults", response_model=EventInstance)
async def get_event_defaults(event_type: str, event_id: int = 0, start_time: Optional[float] = None):
    """A new event of ``event_type`` populated with the schema defaults."""
    try:
        catalog = EventCatalog(load_schema(_default_schema_document()))
        return catalog.new_event(event_type, event_id, start_time)
    except UnknownEventType as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/validate", response_model=ValidationResponse)
async def validate_plan(body: PlanRequest):
    """Validate a plan against the schema without running it."""
    plan, schema = _parse(body)
    try:
        EventCatalog(schema).validate_plan(plan)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid plan: {e}")
    return {"valid": True, "events": len(plan.events), "envelopes": len(plan.envelopes)}


@app.post("/api/simulate", response_model=SimulationResponse)
async def simulate(body: SimulationRequest):
    """Run one simulation and return the samples plus per-envelope series."""
    plan, schema = _parse(body)
    logger.info(f"Received simulation request: {len(plan.events)} events, days {body.start_day}..{body.end_day}")

    try:
        result = await asyncio.to_thread(
            _run_simulation, plan, schema, body.start_day, body.end_day, body.sample_interval_days,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid plan: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Simulation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Simulation error: {e}")

    logger.info(f"Simulation complete with {len(result['samples'])} samples")
    return result


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _configure_logging()
    uvicorn.run("server:app", host="0.0.0.0", port=8080, reload=True)

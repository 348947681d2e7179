import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from config import EventInstance, Parameter, Plan, Schema, UpdatingEventInstance, load_schema

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SCHEMA_FILE = os.path.join(ROOT, "event_schema.json")
PLAN_FILE = os.path.join(ROOT, "example_plan.json")


def build_event(
    event_id: int,
    event_type: str,
    params: Dict[str, Any],
    updating: Sequence[Tuple[int, str, Dict[str, Any]]] = (),
) -> EventInstance:
    """Event with parameter ids assigned in dict order; updating entries are (id, type, params)."""
    return EventInstance(
        id=event_id,
        type=event_type,
        parameters=[Parameter(id=i, type=k, value=v) for i, (k, v) in enumerate(params.items())],
        updating_events=[
            UpdatingEventInstance(
                id=upd_id,
                type=upd_type,
                parameters=[Parameter(id=i, type=k, value=v) for i, (k, v) in enumerate(upd_params.items())],
            )
            for upd_id, upd_type, upd_params in updating
        ],
    )


def build_plan(
    envelopes: List[Dict[str, Any]],
    events: List[EventInstance],
    inflation_rate: float = 0.0,
    adjust_for_inflation: bool = False,
    current_time_days: Optional[int] = None,
) -> Plan:
    return Plan.model_validate(
        {
            "inflation_rate": inflation_rate,
            "adjust_for_inflation": adjust_for_inflation,
            "current_time_days": current_time_days,
            "envelopes": envelopes,
            "events": [e.model_dump() for e in events],
        }
    )


def cash(name: str = "Cash", balance: float = 0.0, category: str = "Cash") -> Dict[str, Any]:
    return {"name": name, "category": category, "growth": "None", "rate": 0.0, "initial_balance": balance}


@pytest.fixture(scope="session")
def schema() -> Schema:
    return load_schema(SCHEMA_FILE)


@pytest.fixture
def make_event():
    return build_event


@pytest.fixture
def make_plan():
    return build_plan


@pytest.fixture
def envelope():
    return cash


@pytest.fixture
def example_plan_document() -> Dict[str, Any]:
    with open(PLAN_FILE, "r", encoding="utf-8") as f:
        return json.load(f)

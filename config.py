import os
import json
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from loguru import logger


class ConfigurationError(Exception):
    """Raised when a plan or schema document cannot be loaded, parsed or resolved."""


class UnknownEventType(ConfigurationError):
    """An event (or updating event) type has no schema definition or no handler."""


class MissingParameter(ConfigurationError):
    """An event instance lacks a parameter its handler reads."""


class InvalidRecurrence(ConfigurationError):
    """A recurring event resolves to a non-positive period."""


class InvalidLoanTerm(ConfigurationError):
    """A loan with a positive principal has a term shorter than one month."""


class UnresolvedEnvelopeReference(ConfigurationError):
    """An event parameter names an envelope that the plan does not declare."""


class DuplicateIdentifier(ConfigurationError):
    """Two events, updating events or parameters share an id within their owner."""


ParameterValue = Union[float, str]


def _normalize_label(value: str) -> str:
    return value.replace(" ", "").replace("_", "").replace("-", "").lower()


class EnvelopeCategory(str, Enum):
    CASH = "Cash"
    SAVINGS = "Savings"
    DEBT = "Debt"
    INVESTMENTS = "Investments"
    RETIREMENT = "Retirement"
    ASSETS = "Assets"


class GrowthMode(str, Enum):
    NONE = "None"
    APPRECIATION = "Appreciation"
    DEPRECIATION = "Depreciation"
    DAILY_COMPOUND = "Daily Compound"
    MONTHLY_COMPOUND = "Monthly Compound"
    YEARLY_COMPOUND = "Yearly Compound"
    SIMPLE_INTEREST = "Simple Interest"
    DEPRECIATION_DAYS = "Depreciation (Days)"


def _coerce_enum(enum_cls, value: Any) -> Any:
    # Accepts "Daily Compound", "DailyCompound", "daily_compound", ...
    if isinstance(value, str):
        key = _normalize_label(value)
        for member in enum_cls:
            if _normalize_label(member.value) == key:
                return member
    return value


# ---------------------------------------------------------------------------
# Plan side
# ---------------------------------------------------------------------------


class Envelope(BaseModel):
    """A named account with its own balance and growth rule."""

    name: str = Field(..., min_length=1, description="Unique envelope key.")
    category: EnvelopeCategory = Field(
        EnvelopeCategory.CASH, description="Metadata only, except Debt skips shortfall warnings."
    )
    growth_mode: GrowthMode = Field(GrowthMode.NONE, alias="growth")
    rate: float = Field(0.0, description="Annual growth (or depreciation) rate as a fraction.")
    initial_balance: float = Field(0.0)
    days_of_usefulness: Optional[float] = Field(
        None, gt=0, description="Straight-line useful life in days, for Depreciation (Days) envelopes."
    )

    model_config = {"validate_by_name": True, "frozen": True}

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        return _coerce_enum(EnvelopeCategory, v)

    @field_validator("growth_mode", mode="before")
    @classmethod
    def normalize_growth_mode(cls, v: Any) -> Any:
        if v is None:
            return GrowthMode.NONE
        return _coerce_enum(GrowthMode, v)

    @model_validator(mode="after")
    def check_rate(self) -> "Envelope":
        if abs(self.rate) > 1.0:
            logger.warning(
                f"Growth rate {self.rate} on envelope '{self.name}' is above 100%; rates are fractions (0.05 = 5%)."
            )
        if self.growth_mode == GrowthMode.DEPRECIATION and self.rate > 1.0:
            raise ValueError(f"Depreciation rate on '{self.name}' cannot exceed 1.0")
        if self.growth_mode == GrowthMode.DEPRECIATION_DAYS and self.days_of_usefulness is None:
            raise ValueError(f"Envelope '{self.name}' uses Depreciation (Days) but sets no days_of_usefulness")
        return self

    @property
    def is_debt(self) -> bool:
        return self.category == EnvelopeCategory.DEBT


class Parameter(BaseModel):
    id: int
    type: str
    value: ParameterValue


def _parameters_to_map(parameters: List[Parameter]) -> Dict[str, ParameterValue]:
    return {p.type: p.value for p in parameters}


class UpdatingEventInstance(BaseModel):
    """A timestamped override (or follow-up action) attached to a parent event."""

    id: int
    type: str
    start_time: Optional[float] = Field(
        None, description="Effective-from day; falls back to a 'start_time' parameter."
    )
    description: str = ""
    parameters: List[Parameter] = Field(default_factory=list)

    def parameter_map(self) -> Dict[str, ParameterValue]:
        return _parameters_to_map(self.parameters)

    @property
    def effective_start(self) -> Optional[float]:
        if self.start_time is not None:
            return self.start_time
        value = self.parameter_map().get("start_time")
        if value is None:
            return None
        return float(value)


class EventInstance(BaseModel):
    id: int
    type: str
    title: str = ""
    description: str = ""
    parameters: List[Parameter] = Field(default_factory=list)
    updating_events: List[UpdatingEventInstance] = Field(default_factory=list)

    def parameter_map(self) -> Dict[str, ParameterValue]:
        return _parameters_to_map(self.parameters)


class Plan(BaseModel):
    """Main plan document: envelopes plus the dated events that act on them."""

    birth_date: Optional[date] = Field(None)
    inflation_rate: float = Field(0.0, gt=-1.0)
    adjust_for_inflation: bool = Field(False)
    current_time_days: Optional[int] = Field(
        None, description="Day treated as 'today' when deflating to present dollars."
    )
    envelopes: List[Envelope] = Field(default_factory=list)
    events: List[EventInstance] = Field(default_factory=list)

    model_config = {"validate_by_name": True, "frozen": True}

    @field_validator("inflation_rate")
    @classmethod
    def check_inflation_rate(cls, v: float) -> float:
        if v > 0.15:
            logger.warning(f"Inflation rate ({v * 100:.1f}%) is unusually high for a long-horizon plan.")
        return v

    def envelope_names(self) -> List[str]:
        return [e.name for e in self.envelopes]


# ---------------------------------------------------------------------------
# Schema side
# ---------------------------------------------------------------------------


class ParameterDefinition(BaseModel):
    type: str
    display_name: Optional[str] = None
    parameter_units: Optional[str] = None
    description: str = ""
    default: ParameterValue = 0.0


class UpdatingEventDefinition(BaseModel):
    type: str
    display_name: Optional[str] = None
    icon: str = ""
    description: str = ""
    parameters: List[ParameterDefinition] = Field(default_factory=list)


class EventDefinition(BaseModel):
    type: str
    display_name: Optional[str] = None
    category: str = ""
    description: str = ""
    icon: str = ""
    parameters: List[ParameterDefinition] = Field(default_factory=list)
    updating_events: List[UpdatingEventDefinition] = Field(default_factory=list)

    def updating_definition(self, updating_type: str) -> Optional[UpdatingEventDefinition]:
        for upd in self.updating_events:
            if upd.type == updating_type:
                return upd
        return None


class Schema(BaseModel):
    """Event-type catalog document; extra keys (envelopes, inflation flags) are ignored."""

    events: List[EventDefinition] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config_from_json(file_path: str) -> Dict[str, Any]:
    """Loads and returns a JSON document (plan or schema) as a dictionary."""
    if not os.path.exists(file_path):
        raise ConfigurationError(f"Configuration file not found at: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Error parsing JSON file '{file_path}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Unexpected error reading config file '{file_path}': {e}") from e


def _validate_document(model_cls, source: Union[str, Dict[str, Any]], label: str):
    data = load_config_from_json(source) if isinstance(source, str) else source
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {label} document: {e}") from e


def load_plan(source: Union[str, Dict[str, Any]]) -> Plan:
    """Builds a Plan from a JSON file path or an already-decoded dictionary."""
    return _validate_document(Plan, source, "plan")


def load_schema(source: Union[str, Dict[str, Any]]) -> Schema:
    """Builds a Schema from a JSON file path or an already-decoded dictionary."""
    return _validate_document(Schema, source, "schema")


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class NegativeBalanceWarning(BaseModel):
    """A non-debt envelope sampled below zero. Reported on the sample, never raised."""

    envelope: str
    category: EnvelopeCategory
    balance: float
    day: int


class SimulationSample(BaseModel):
    """Ledger snapshot at one sampling point."""

    date: int = Field(..., description="Days since the plan epoch.")
    total_value: float
    parts: Dict[str, float] = Field(default_factory=dict)
    warnings: List[NegativeBalanceWarning] = Field(default_factory=list)

    @property
    def flagged(self) -> bool:
        return bool(self.warnings)

# constants.py

DAYS_PER_YEAR: int = 365
MONTHS_PER_YEAR: int = 12
DAYS_PER_MONTH: float = DAYS_PER_YEAR / MONTHS_PER_YEAR
WEEKS_PER_YEAR: int = 52
SMALL_EPSILON: float = 1e-6
DAY_EPSILON: float = 1e-9

DEFAULT_SCHEMA_FILENAME: str = "event_schema.json"
DEFAULT_PLAN_FILENAME: str = "example_plan.json"
DEFAULT_HORIZON_DAYS: int = 20 * DAYS_PER_YEAR
DEFAULT_SAMPLE_INTERVAL_DAYS: int = 5

# Cadence of recurring updating-event actions such as childcare
ACTION_PERIOD_DAYS: int = 30

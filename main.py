import sys
import datetime as _dt
from loguru import logger

from config import ConfigurationError, load_plan, load_schema
from utils import log_plan_summary, log_simulation_results
from simulation import run_simulation
from constants import (
    DEFAULT_HORIZON_DAYS,
    DEFAULT_PLAN_FILENAME,
    DEFAULT_SAMPLE_INTERVAL_DAYS,
    DEFAULT_SCHEMA_FILENAME,
)


def _int_arg(position: int, default: int, label: str) -> int:
    if len(sys.argv) <= position:
        return default
    try:
        return int(sys.argv[position])
    except ValueError:
        raise ConfigurationError(f"{label} must be an integer, got '{sys.argv[position]}'") from None


def main():
    """
    Main execution entry point.

    Usage: python main.py [plan.json] [event_schema.json] [end_day] [interval]

    Loads the plan and event schema, runs one deterministic simulation and
    logs the resulting balances.
    """
    current_timestamp_str = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = f"sim_log_{current_timestamp_str}.log"

    # Configure loguru
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    logger.add(
        log_filename,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        level="INFO",
        rotation="10 MB",
    )

    logger.info(f"Logging initialized. Log file: {log_filename}")

    # --- LOAD PLAN AND SCHEMA FROM JSON ---
    plan_filename = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PLAN_FILENAME
    schema_filename = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_SCHEMA_FILENAME
    if len(sys.argv) <= 2:
        logger.info(f"Using plan '{plan_filename}' and schema '{schema_filename}'")

    try:
        end_day = _int_arg(3, DEFAULT_HORIZON_DAYS, "end_day")
        interval = _int_arg(4, DEFAULT_SAMPLE_INTERVAL_DAYS, "interval")
        logger.info(f"Loading schema from: {schema_filename}")
        schema = load_schema(schema_filename)
        logger.info(f"Loading plan from: {plan_filename}")
        plan = load_plan(plan_filename)
        logger.info(f"Plan with {len(plan.events)} events loaded and validated successfully.")
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        return 1

    log_plan_summary(plan)

    try:
        samples = run_simulation(plan, schema, 0, end_day, interval)
    except ConfigurationError as e:
        logger.error(f"Plan could not be simulated: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid run range: {e}")
        return 1

    log_simulation_results(samples, plan.birth_date)
    logger.info(f"--- Main execution finished. Log: {log_filename} ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())

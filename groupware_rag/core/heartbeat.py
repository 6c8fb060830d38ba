"""
Cooperative periodic scheduler used to drain the ingest queue on an interval.
"""

import time
import threading
from typing import Callable, Dict

from .config import (
    get_drain_batch_size,
    get_drain_interval,
    is_drain_scheduler_enabled,
    validate_drain_config,
)
from ..util.logging import logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
running = False
shutdown_event = None

DRAIN_TASK_NAME = "drain_ingest_queue"


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_drain_config()
    if issues:
        raise ValueError(f"Scheduler configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None
    }

    logger.info(f"Registered scheduled task '{name}' (every {interval_sec}s)")


def register_drain_task(pipeline, interval_sec: int = None, batch_size: int = None,
                        owner_id: str = None, collapse_duplicates: bool = True):
    """Register a task that drains one batch of the ingest queue per run."""
    interval_sec = interval_sec or get_drain_interval()
    batch_size = batch_size or get_drain_batch_size()

    def drain_once():
        return pipeline.drain(batch_size=batch_size, owner_id=owner_id,
                              collapse_duplicates=collapse_duplicates)

    register_task(DRAIN_TASK_NAME, interval_sec, drain_once)
    return drain_once


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered scheduled task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def start(force: bool = False):
    """
    Start the scheduler loop.

    Runs a cooperative loop that checks task intervals and executes tasks
    when due. Uses time.monotonic() for timing.

    Args:
        force: Run even when DRAIN_SCHEDULER_ENABLED is off (explicit
            operator request, e.g. run_drain.py --loop)
    """
    global running, shutdown_event

    if not force and not is_drain_scheduler_enabled():
        logger.info("Drain scheduler disabled (DRAIN_SCHEDULER_ENABLED=false). Skipping start.")
        return

    if running:
        raise RuntimeError("Scheduler already running")

    issues = validate_drain_config()
    if issues:
        raise ValueError(f"Scheduler configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting scheduler loop with tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            for name, task_info in list(tasks.items()):
                if should_run_task(name, task_info):
                    try:
                        run_task(name, task_info)
                    except Exception as e:
                        # Task failures never stop the loop
                        logger.error(f"Scheduled task '{name}' failed: {e}")

            shutdown_event.wait(0.1)

    except KeyboardInterrupt:
        logger.info("Scheduler interrupted by user")
    finally:
        running = False
        logger.info("Scheduler loop stopped")


def stop():
    """Stop the scheduler loop gracefully."""
    global running

    if not running:
        logger.info("Scheduler not running")
        return

    running = False

    if shutdown_event:
        shutdown_event.set()

    logger.info("Scheduler stopped")


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing.

    last_run is updated even when the task fails, so a failing task waits a
    full interval before its next attempt.
    """
    start_time = time.monotonic()

    try:
        task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        task_info["last_run"] = end_time
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    logger.debug(f"Scheduled task '{name}' completed in {end_time - start_time:.2f}s")


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None


def get_status():
    """Return current scheduler status for monitoring."""
    if not running and not is_drain_scheduler_enabled():
        return {"status": "disabled", "reason": "DRAIN_SCHEDULER_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
            }
            for name, info in tasks.items()
        },
    }

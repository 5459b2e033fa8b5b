import threading
import time
from datetime import UTC, datetime

from apscheduler.schedulers.background import BackgroundScheduler


def sweep_catalog_cache():
    from flask import current_app

    from .catalog.client import get_catalog_client

    dropped = get_catalog_client().cache.expire()
    if dropped:
        current_app.logger.info("Dropped %d expired catalog search(es).", dropped)
    return dropped


def backfill_descriptions():
    from .books.registry import backfill_descriptions as run_backfill
    from .catalog.client import get_catalog_client

    return run_backfill(get_catalog_client())


def init_scheduler(app):
    scheduler = BackgroundScheduler()
    sweep_interval_minutes = max(1, int(app.config.get("SCHEDULER_CACHE_SWEEP_INTERVAL_MINUTES", 10)))
    backfill_interval_minutes = max(1, int(app.config.get("SCHEDULER_DESCRIPTION_BACKFILL_INTERVAL_MINUTES", 360)))
    state_lock = threading.Lock()
    app.scheduler_state_lock = state_lock
    app.scheduler_state = {"updated_at": None, "jobs": {}}

    def _record_job_result(job_id, *, status, duration_ms, error=None):
        now = datetime.now(UTC).isoformat()
        with state_lock:
            jobs = app.scheduler_state.setdefault("jobs", {})
            entry = jobs.setdefault(job_id, {"consecutive_failures": 0})
            entry["last_status"] = status
            entry["last_run_at"] = now
            entry["last_duration_ms"] = round(duration_ms, 2)
            if status == "ok":
                entry["last_success_at"] = now
                entry["last_error"] = None
                entry["consecutive_failures"] = 0
            else:
                entry["last_error_at"] = now
                entry["last_error"] = (error or "unknown")[:500]
                entry["consecutive_failures"] = int(entry.get("consecutive_failures", 0)) + 1
            app.scheduler_state["updated_at"] = now

    def _run_job(job_id, fn, *, success_log_message):
        started = time.perf_counter()
        try:
            fn()
        except Exception:
            # Keep a broad boundary here: jobs touch the database and the
            # remote catalog and must never crash the scheduler thread.
            app.logger.exception("Scheduler job %s crashed.", job_id)
            _record_job_result(
                job_id,
                status="error",
                duration_ms=(time.perf_counter() - started) * 1000,
                error="Unhandled exception",
            )
            return

        duration_ms = (time.perf_counter() - started) * 1000
        _record_job_result(job_id, status="ok", duration_ms=duration_ms)
        app.logger.info(success_log_message, duration_ms)

    def run_cache_sweep():
        with app.app_context():
            _run_job(
                "sweep_catalog_cache",
                sweep_catalog_cache,
                success_log_message="Scheduler job sweep_catalog_cache completed in %.2f ms.",
            )

    def run_description_backfill():
        with app.app_context():
            _run_job(
                "backfill_descriptions",
                backfill_descriptions,
                success_log_message="Scheduler job backfill_descriptions completed in %.2f ms.",
            )

    scheduler.add_job(
        func=run_cache_sweep,
        trigger="interval",
        minutes=sweep_interval_minutes,
        id="sweep_catalog_cache",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        func=run_description_backfill,
        trigger="interval",
        minutes=backfill_interval_minutes,
        id="backfill_descriptions",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    app.scheduler = scheduler

"""
In-process cron scheduler

Optional second invoker for the cron jobs, built on APScheduler. The
external cron caller hitting /cron/* stays the primary path; enable this
with SCHEDULER_ENABLED for single-process deployments. Jobs run the same
bodies as the HTTP endpoints (app.services.cron_jobs).
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app import db
from app.services import cron_jobs

logger = logging.getLogger(__name__)

# (job id, display name, trigger, misfire grace seconds)
JOB_SCHEDULE = (
    (
        cron_jobs.JOB_PROCESS_ROUNDS,
        "Detect and score completed rounds",
        CronTrigger(minute="*/15", timezone="UTC"),
        300,
    ),
    (
        cron_jobs.JOB_SEASON_COMPLETION,
        "Season completion and winners",
        CronTrigger(hour=1, minute=0, timezone="UTC"),
        3600,
    ),
    (
        cron_jobs.JOB_WINNER_DETERMINATION,
        "Winner determination",
        CronTrigger(hour=2, minute=0, timezone="UTC"),
        3600,
    ),
    (
        cron_jobs.JOB_CUP_ACTIVATION,
        "Cup activation check",
        CronTrigger(hour=3, minute=0, timezone="UTC"),
        3600,
    ),
)


class SchedulerService:
    """Runs the cron jobs on a background thread"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.run_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", False):
            self.start()
        else:
            logger.info("In-process scheduler disabled; relying on external cron")

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        for job_id, name, trigger, grace in JOB_SCHEDULE:
            self.scheduler.add_job(
                func=self._run_job,
                args=(job_id,),
                trigger=trigger,
                id=job_id,
                name=name,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=grace,
            )
        logger.info(f"{len(JOB_SCHEDULE)} cron jobs scheduled")

    def _run_job(self, job_id):
        """Run one cron job inside an app context"""
        with self.app.app_context():
            try:
                payload, status = cron_jobs.JOBS[job_id]()
                success = status < 400 and payload.get("success", False)
                self._update_stats(success, None if success else payload.get("message"))
                log = logger.info if success else logger.warning
                log(f"Scheduled job {job_id} finished ({status}): {payload.get('message')}")
                return payload, status

            except Exception as e:
                db.session.rollback()
                self._update_stats(False, str(e))
                logger.error(f"Error in scheduled job {job_id}: {e}", exc_info=True)
                return None, 500
            finally:
                db.session.remove()

    def _update_stats(self, success, error=None):
        self.run_stats["last_run"] = datetime.now(timezone.utc)
        self.run_stats["total_runs"] += 1

        if success:
            self.run_stats["successful_runs"] += 1
            self.run_stats["last_error"] = None
        else:
            self.run_stats["failed_runs"] += 1
            self.run_stats["last_error"] = error

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.run_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_run(self, job_id):
        """Run a job now, outside its schedule"""
        if job_id not in cron_jobs.JOBS:
            return False, f"Unknown job: {job_id}"
        payload, status = self._run_job(job_id)
        if payload is None:
            return False, f"Manual {job_id} run failed"
        return status < 400, payload.get("message", "")


# Global scheduler instance
scheduler_service = SchedulerService()

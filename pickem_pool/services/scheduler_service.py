"""
Pick'em Background Scheduler Service

Keeps weekly scores current without an admin having to press the button:
an interval job rescores the active week once final games have ungraded
picks, and a daily job moves the season's current week forward.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from pickem_pool import db
from pickem_pool.exceptions import ScoringError
from pickem_pool.models import Season
from pickem_pool.utils.scoring import ScoringEngine

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages background scoring and season-clock jobs"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.scoring_engine = ScoringEngine()
        self.is_running = False
        self.job_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "weeks_rescored": 0,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

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
        """Add core scheduled jobs"""
        interval = self.app.config.get("AUTO_SCORE_INTERVAL_MINUTES", 10)

        self.scheduler.add_job(
            func=self._auto_rescore,
            trigger=IntervalTrigger(minutes=interval),
            id="auto_rescore",
            name="Rescore Current Week",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        # Daily season clock update (6 AM UTC)
        self.scheduler.add_job(
            func=self._update_current_week,
            trigger=CronTrigger(hour=6, minute=0),
            id="update_current_week",
            name="Update Current Week",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _weeks_to_check(self, season):
        # Late results for last week can still arrive early in the new week
        week = season.current_week
        return [w for w in (week - 1, week) if w >= 1]

    def _auto_rescore(self):
        """Rescore the active week (and the one before) when results are pending"""
        with self.app.app_context():
            try:
                current_season = Season.get_current_season()
                if not current_season:
                    return

                rescored = 0
                for week in self._weeks_to_check(current_season):
                    if not ScoringEngine.needs_rescore(week, current_season.year):
                        continue

                    result = self.scoring_engine.recompute(week, current_season.year)
                    rescored += 1
                    logger.info(
                        f"Auto-rescored week {week} of {current_season.year}: "
                        f"{result['users_updated']} users updated"
                    )

                self._update_stats(True, rescored)

            except ScoringError as e:
                self._update_stats(False)
                self.job_stats["last_error"] = e.message
                logger.error(f"Auto-rescore failed: {e.payload}")

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.job_stats["last_error"] = str(e)
                logger.error(f"Error in auto-rescore: {e}", exc_info=True)

    def _update_current_week(self):
        """Move the active season's current week to match the schedule"""
        with self.app.app_context():
            try:
                current_season = Season.get_current_season()
                if not current_season:
                    return

                previous = current_season.current_week
                week = current_season.update_current_week()
                if week != previous:
                    logger.info(
                        f"Season {current_season.year} current week {previous} -> {week}"
                    )

                self._update_stats(True)

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.job_stats["last_error"] = str(e)
                logger.error(f"Error updating current week: {e}", exc_info=True)

    def _update_stats(self, success, weeks_rescored=0):
        """Update job statistics"""
        self.job_stats["last_run"] = datetime.now(timezone.utc)
        self.job_stats["total_runs"] += 1

        if success:
            self.job_stats["successful_runs"] += 1
            self.job_stats["weeks_rescored"] += weeks_rescored
            self.job_stats["last_error"] = None
        else:
            self.job_stats["failed_runs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.job_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()

        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_run(self, job_type="rescore"):
        """Manually trigger a job"""
        if job_type == "rescore":
            self._auto_rescore()
        elif job_type == "current_week":
            self._update_current_week()
        else:
            return False, f"Unknown job type: {job_type}"

        if self.job_stats["last_error"]:
            return False, f"Manual {job_type} run failed: {self.job_stats['last_error']}"
        return True, f"Manual {job_type} run completed"

    def pause_job(self, job_id):
        """Pause a specific job"""
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except Exception as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except Exception as e:
            return False, f"Failed to resume job: {e}"


# Global scheduler instance
scheduler_service = SchedulerService()

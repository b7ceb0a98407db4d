"""
Cron job monitoring and alerting

Keeps an in-memory history of cron executions per job, counts consecutive
failures and sends failure, recovery and performance alerts by webhook and
email. History lives in the worker process, so each worker reports its own
view in /api/health/cron.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone

import requests
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
RECENT_WINDOW = 10

STATUS_RUNNING = "running"
STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"
STATUS_TIMEOUT = "timeout"

DEFAULT_ALERT_CONFIG = {
    "CRON_ALERTS_ENABLED": False,
    "CRON_WEBHOOK_URL": None,
    "CRON_ALERT_EMAILS": [],
    "CRON_FAILURE_THRESHOLD": 3,
    "CRON_PERFORMANCE_THRESHOLD_MS": 300000,
    "CRON_ALERT_COOLDOWN_MS": 3600000,
}

WEBHOOK_TIMEOUT = 10


def _now():
    return datetime.now(timezone.utc)


class CronAlertingService:
    """Tracks cron executions and raises alerts past configured thresholds

    Settings come from the Flask config when an app context is active;
    ``overrides`` take precedence (used by tests and the CLI).
    """

    def __init__(self, overrides=None):
        self.overrides = dict(overrides or {})
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        """Drop all history and alert state"""
        with self._lock:
            self.history = {}
            self.consecutive_failures = {}
            self.last_alert_time = {}

    def setting(self, key):
        if key in self.overrides:
            return self.overrides[key]
        if has_app_context():
            return current_app.config.get(key, DEFAULT_ALERT_CONFIG[key])
        return DEFAULT_ALERT_CONFIG[key]

    # Execution tracking

    def start_execution(self, job_name):
        execution_id = f"{job_name}-{uuid.uuid4().hex[:12]}"
        execution = {
            "job_name": job_name,
            "execution_id": execution_id,
            "start_time": _now(),
            "end_time": None,
            "status": STATUS_RUNNING,
            "duration_ms": None,
            "error": None,
            "metrics": None,
        }
        with self._lock:
            history = self.history.setdefault(job_name, [])
            history.append(execution)
            del history[:-HISTORY_LIMIT]

        logger.info(f"Cron execution started: {job_name} ({execution_id})")
        return execution_id

    def complete_execution(self, execution_id, status, error=None, metrics=None, duration_ms=None):
        """Record the outcome of an execution and raise any resulting alerts"""
        execution = self._find_execution(execution_id)
        if execution is None:
            logger.warning(f"Cron execution {execution_id} not found for completion")
            return None

        end_time = _now()
        execution["end_time"] = end_time
        execution["status"] = status
        execution["error"] = error
        execution["metrics"] = metrics
        if duration_ms is None:
            duration_ms = int((end_time - execution["start_time"]).total_seconds() * 1000)
        execution["duration_ms"] = duration_ms

        logger.info(
            f"Cron execution completed: {execution['job_name']} ({execution_id}) "
            f"status={status} duration={duration_ms}ms"
        )

        self._process_execution_alerts(execution)
        return execution

    def get_execution_history(self, job_name, limit=10):
        history = self.history.get(job_name, [])
        return sorted(history[-limit:], key=lambda e: e["start_time"], reverse=True)

    def get_job_status(self, job_name):
        failures = self.consecutive_failures.get(job_name, 0)
        if failures >= self.setting("CRON_FAILURE_THRESHOLD"):
            return "failing"
        if failures > 0:
            return "degraded"
        return "healthy"

    def get_health_summary(self):
        """Per-job totals, success rate, average duration and status"""
        summary = {}
        for job_name, history in self.history.items():
            recent = history[-RECENT_WINDOW:]
            failures = sum(1 for e in recent if e["status"] == STATUS_FAILURE)
            durations = [e["duration_ms"] for e in recent if e["duration_ms"]]
            average = round(sum(durations) / len(durations)) if durations else 0

            summary[job_name] = {
                "total_executions": len(history),
                "recent_executions": len(recent),
                "recent_failures": failures,
                "consecutive_failures": self.consecutive_failures.get(job_name, 0),
                "success_rate": (len(recent) - failures) / len(recent) * 100 if recent else 0,
                "average_duration": average,
                "last_execution": recent[-1]["start_time"].isoformat() if recent else None,
                "status": self.get_job_status(job_name),
            }
        return summary

    # Alerts

    def trigger_alert(self, alert_type, severity, job_name, message, details=None):
        """Send an alert unless alerting is off or the job is in cooldown

        Returns the alert event, or None when nothing was sent.
        """
        if not self.setting("CRON_ALERTS_ENABLED"):
            logger.debug(f"Alerting disabled, skipping {alert_type} alert for {job_name}")
            return None

        event = {
            "id": f"alert-{uuid.uuid4().hex[:12]}",
            "type": alert_type,
            "severity": severity,
            "job_name": job_name,
            "message": message,
            "details": details or {},
            "timestamp": _now(),
        }

        cooldown_ms = self.setting("CRON_ALERT_COOLDOWN_MS")
        last_alert = self.last_alert_time.get(job_name)
        if last_alert and (event["timestamp"] - last_alert).total_seconds() * 1000 < cooldown_ms:
            logger.debug(f"Alert for {job_name} in cooldown since {last_alert.isoformat()}")
            return None

        logger.warning(f"Triggering {severity} {alert_type} alert for {job_name}: {message}")

        self._send_notifications(event)
        self.last_alert_time[job_name] = event["timestamp"]
        return event

    def _process_execution_alerts(self, execution):
        job_name = execution["job_name"]
        threshold = self.setting("CRON_FAILURE_THRESHOLD")

        if execution["status"] == STATUS_SUCCESS:
            previous_failures = self.consecutive_failures.get(job_name, 0)
            self.consecutive_failures[job_name] = 0

            if previous_failures >= threshold:
                self.trigger_alert(
                    "recovery",
                    "medium",
                    job_name,
                    f"Cron job {job_name} has recovered after {previous_failures} consecutive failures",
                    {
                        "execution_id": execution["execution_id"],
                        "duration_ms": execution["duration_ms"],
                        "previous_failures": previous_failures,
                    },
                )

            performance_threshold = self.setting("CRON_PERFORMANCE_THRESHOLD_MS")
            if execution["duration_ms"] and execution["duration_ms"] > performance_threshold:
                self.trigger_alert(
                    "performance",
                    "medium",
                    job_name,
                    f"Cron job {job_name} execution exceeded performance threshold",
                    {
                        "execution_id": execution["execution_id"],
                        "duration_ms": execution["duration_ms"],
                        "threshold_ms": performance_threshold,
                    },
                )

        elif execution["status"] in (STATUS_FAILURE, STATUS_TIMEOUT):
            failures = self.consecutive_failures.get(job_name, 0) + 1
            self.consecutive_failures[job_name] = failures

            if failures >= threshold:
                severity = "critical" if failures >= threshold * 2 else "high"
                self.trigger_alert(
                    "failure",
                    severity,
                    job_name,
                    f"Cron job {job_name} has failed {failures} consecutive times",
                    {
                        "execution_id": execution["execution_id"],
                        "error": execution["error"],
                        "duration_ms": execution["duration_ms"],
                        "consecutive_failures": failures,
                    },
                )

    def _send_notifications(self, event):
        if self.setting("CRON_WEBHOOK_URL"):
            self._send_webhook(event)
        if self.setting("CRON_ALERT_EMAILS"):
            self._send_email(event)

    def _send_webhook(self, event):
        payload = {
            "alert": {**event, "timestamp": event["timestamp"].isoformat()},
            "timestamp": event["timestamp"].isoformat(),
            "environment": current_app.config.get("FLASK_ENV") if has_app_context() else None,
        }
        try:
            response = requests.post(
                self.setting("CRON_WEBHOOK_URL"), json=payload, timeout=WEBHOOK_TIMEOUT
            )
            response.raise_for_status()
            logger.info(f"Webhook notification sent for {event['id']}")
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send webhook notification for {event['id']}: {e}")
            return False

    def _send_email(self, event):
        if not has_app_context():
            logger.warning(f"No app context, email alert {event['id']} not sent")
            return False

        from app.utils.email_service import EmailService

        return EmailService().send_cron_alert(event, self.setting("CRON_ALERT_EMAILS"))

    def _find_execution(self, execution_id):
        with self._lock:
            for history in self.history.values():
                for execution in history:
                    if execution["execution_id"] == execution_id:
                        return execution
        return None


alerting_service = CronAlertingService()

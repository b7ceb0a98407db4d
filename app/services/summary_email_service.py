"""
Season summary email trigger

The player-facing season finale emails are rendered and sent by the web
app's /api/send-summary endpoint. Season completion only asks it to run;
any failure is reported back to the caller and never raised.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)


def trigger_summary_emails(completed_season_ids):
    """POST to {APP_URL}/api/send-summary with the cron secret

    Returns:
        dict: attempted, success, total_sent, errors (list of strings)
    """
    result = {"attempted": True, "success": False, "total_sent": 0, "errors": []}

    url = f"{current_app.config['APP_URL'].rstrip('/')}/api/send-summary"
    headers = {
        "Content-Type": "application/json",
        "X-Cron-Secret": current_app.config.get("CRON_SECRET") or "",
    }
    logger.info(
        f"Requesting summary emails for {len(completed_season_ids)} completed seasons via {url}"
    )

    try:
        # No round_id: the email endpoint detects the finished season itself
        response = requests.post(
            url,
            json={"test_mode": False},
            headers=headers,
            timeout=current_app.config.get("SUMMARY_EMAIL_TIMEOUT", 30),
        )
    except requests.RequestException as e:
        logger.error(f"Summary email request failed: {e}")
        result["errors"].append(str(e))
        return result

    if not response.ok:
        logger.error(f"Summary email endpoint answered HTTP {response.status_code}: {response.text}")
        result["errors"].append(f"HTTP {response.status_code}: {response.text}")
        return result

    try:
        body = response.json()
    except ValueError:
        result["errors"].append("Summary email endpoint returned invalid JSON")
        return result

    if not isinstance(body, dict):
        logger.error(f"Summary email endpoint returned unexpected JSON: {body!r}")
        result["errors"].append("Summary email endpoint returned unexpected JSON")
        return result

    result["success"] = bool(body.get("success"))
    result["total_sent"] = (body.get("email_stats") or {}).get("total_sent", 0)
    if body.get("errors"):
        result["errors"].append(", ".join(str(e) for e in body["errors"][:3]))

    logger.info(
        f"Summary emails sent: {result['total_sent']} (operation {body.get('operation_id')})"
    )
    return result

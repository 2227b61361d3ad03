"""
Notifications — Slack webhook integration for agent run failures.

Notification failure never blocks the runner.
"""
import logging

import requests

logger = logging.getLogger('services.notifications')


def notify_run_failed(webhook_url, run_id, agent_name, message, duration_ms=0, timeout=10):
    """Post a run failure alert to Slack. Returns True if the webhook accepted it."""
    if not webhook_url:
        return False

    try:
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"Agent Run FAILED — {agent_name}",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Run:* {run_id}"},
                    {"type": "mrkdwn", "text": f"*Duration:* {duration_ms / 1000:.1f}s"},
                ]
            },
        ]

        if message:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Error:* ```{message[:500]}```"}
            })

        response = requests.post(webhook_url, json={"blocks": blocks}, timeout=timeout)
        response.raise_for_status()
        logger.info("Run %s failure notification sent", run_id)
        return True

    except Exception:
        logger.error("Failed to send failure notification for run %s", run_id, exc_info=True)
        return False

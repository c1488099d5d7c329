"""
Escalation Notifier

Delivers committed escalations to human agents. Implements a pluggable
notification contract with a Slack webhook as the production channel and a
log-only fallback when nothing is configured.

Delivery is advisory: notifiers report failures through NotificationResult
and never raise.
"""

import httpx
from typing import Dict, Optional, Protocol
from support_engine.config import Settings, get_settings
from support_engine.models.escalation import NotificationPayload, NotificationResult
from support_engine.models.priority import EscalationPriority
from support_engine.services.response_composer import SUMMARY_FIELDS
from support_engine.utils.observability import logger
from support_engine.utils.retry import RetryExhaustedError, retry_async

PRIORITY_EMOJI = {
    EscalationPriority.LOW: ":information_source:",
    EscalationPriority.MEDIUM: ":hand:",
    EscalationPriority.HIGH: ":warning:",
    EscalationPriority.URGENT: ":rotating_light:",
}

CATEGORY_LABELS = {
    "marketing": "📈 マーケティング",
    "tech": "💻 技術サポート",
    "general": "💬 一般サポート",
}

MAX_NEEDS_LISTED = 3


class Notifier(Protocol):
    """
    Protocol for escalation notification channels.

    Implement this to add new delivery mechanisms (email, paging, etc.)
    """

    async def notify(self, channel: str, payload: NotificationPayload) -> NotificationResult:
        """
        Deliver an escalation to `channel`.

        Args:
            channel: Routing target, e.g. "#tech-support"
            payload: Escalation details

        Returns:
            NotificationResult with success flag and error description
        """
        ...


class SlackNotifier:
    """
    Slack webhook implementation for escalation notifications.

    Posts a Block Kit message per channel, with a per-request timeout and
    exponential-backoff retries on HTTP failures. Incoming webhooks are bound
    to one Slack channel, so each routing target resolves to its own webhook
    and falls back to the default one.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        channel_webhooks: Optional[Dict[str, str]] = None,
    ):
        self._settings = settings or get_settings()
        self._webhook_url = webhook_url or self._settings.slack_webhook_url
        self._channel_webhooks = dict(
            channel_webhooks if channel_webhooks is not None else self._settings.slack_webhook_urls
        )

    @property
    def is_configured(self) -> bool:
        """Check if any Slack webhook is configured."""
        return self._webhook_url is not None or bool(self._channel_webhooks)

    def webhook_for(self, channel: str) -> Optional[str]:
        return self._channel_webhooks.get(channel) or self._webhook_url

    async def notify(self, channel: str, payload: NotificationPayload) -> NotificationResult:
        """
        Send an escalation notification to Slack.

        Args:
            channel: Slack channel to route to
            payload: Escalation details

        Returns:
            NotificationResult; failures are described, never raised
        """
        webhook_url = self.webhook_for(channel)
        if not webhook_url:
            logger.warning(f"Slack webhook not configured for {channel}, skipping notification")
            return NotificationResult(success=False, error="Slack webhook not configured")

        body = self._build_slack_payload(channel, payload)
        settings = self._settings

        async def _post() -> None:
            async with httpx.AsyncClient(timeout=settings.notifier_timeout_seconds) as client:
                response = await client.post(webhook_url, json=body)
                response.raise_for_status()

        try:
            await retry_async(
                _post,
                max_attempts=settings.notifier_max_attempts,
                min_wait=settings.retry_min_wait_seconds,
                max_wait=settings.retry_max_wait_seconds,
                retry_on=(httpx.HTTPError,),
                label=f"Slack notification to {channel}",
            )
        except RetryExhaustedError as e:
            logger.error(
                f"Failed to send Slack notification for {payload.escalation_id}: {e.last_error}",
                extra={"escalation_id": payload.escalation_id, "channel": channel}
            )
            return NotificationResult(success=False, error=str(e.last_error))

        logger.info(
            f"Slack escalation notification sent to {channel} for {payload.escalation_id}",
            extra={"escalation_id": payload.escalation_id, "priority": payload.priority}
        )
        return NotificationResult(success=True)

    def _build_slack_payload(self, channel: str, payload: NotificationPayload) -> dict:
        """Build Slack Block Kit message payload."""
        emoji = PRIORITY_EMOJI.get(payload.priority, ":hand:")
        category = CATEGORY_LABELS.get(payload.category, payload.category)
        labels = dict(SUMMARY_FIELDS)

        field_lines = [
            f"• {labels.get(name, name)}: {', '.join(value) if isinstance(value, list) else value}"
            for name, value in payload.collected_fields.items()
        ]
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"{emoji} エスカレーション ({payload.priority.upper()})",
                    "emoji": True
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*カテゴリー:*\n{category}"},
                    {"type": "mrkdwn", "text": f"*エスカレーションID:*\n{payload.escalation_id}"}
                ]
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*理由:*\n" + "\n".join(f"• {r}" for r in payload.reasons)
                }
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*収集済み情報:*\n" + ("\n".join(field_lines) or "（なし）")
                }
            },
        ]

        if payload.needs:
            blocks.append({
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*推定ニーズ:*\n" + "\n".join(
                        f"• {n.suggestion} ({n.priority_level})" for n in payload.needs[:MAX_NEEDS_LISTED]
                    )
                }
            })

        blocks.append({"type": "divider"})
        context = f"会話: <{self._settings.app_url}/conversations/{payload.conversation_ref}|{payload.conversation_ref}>"
        if payload.mentions:
            context += " | " + " ".join(payload.mentions)
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": context}]
        })

        return {
            "channel": channel,
            "text": f"{emoji} エスカレーション: {category} ({payload.priority})",
            "blocks": blocks,
        }


class LogOnlyNotifier:
    """
    Fallback notifier that only logs escalations.

    Used when no external notification channel is configured.
    """

    async def notify(self, channel: str, payload: NotificationPayload) -> NotificationResult:
        """Log the escalation."""
        logger.warning(
            f"Escalation {payload.escalation_id} for {channel} (no notifier configured)",
            extra={
                "conversation_ref": payload.conversation_ref,
                "priority": payload.priority,
                "reasons": payload.reasons
            }
        )
        return NotificationResult(success=True)


def get_notifier(settings: Optional[Settings] = None) -> Notifier:
    """Slack when a webhook is configured, else log-only."""
    slack = SlackNotifier(settings=settings)
    return slack if slack.is_configured else LogOnlyNotifier()

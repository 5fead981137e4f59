"""GitHub webhook handling: verification, filtering and job dispatch.

The dispatcher does the minimum needed to acknowledge a delivery quickly:
verify the signature, decide whether the event is interesting and enqueue a
`score_pr` job under its deterministic identity. All GitHub and database
work happens in the worker.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.job_queue import JobQueue, JobQueueError, ScorePrJob
from app.core.logging import get_logger
from app.services.github.security import verify_signature

logger = get_logger(__name__)

SUPPORTED_EVENT = "pull_request"
SUPPORTED_ACTIONS = frozenset({"opened", "synchronize"})
BODY_DIGEST_LENGTH = 16


class WebhookError(Exception):
    """Base class for rejected webhook deliveries."""


class WebhookConfigurationError(WebhookError):
    """The webhook secret is not configured."""


class WebhookSignatureError(WebhookError):
    """Missing or invalid X-Hub-Signature-256."""


class WebhookPayloadError(WebhookError):
    """Body is not valid JSON or lacks the fields a pull_request event needs."""


class _Account(BaseModel):
    login: Optional[str] = None


class _Repository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str
    name: Optional[str] = None
    owner: Optional[_Account] = None


class _PullRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: Optional[int] = None


class _Installation(BaseModel):
    id: int


class PullRequestEvent(BaseModel):
    """The parts of a pull_request webhook payload used for dispatch."""

    model_config = ConfigDict(extra="ignore")

    action: str
    repository: _Repository
    pull_request: Optional[_PullRequest] = None
    installation: Optional[_Installation] = None

    @property
    def owner(self) -> str:
        if self.repository.owner and self.repository.owner.login:
            return self.repository.owner.login
        return self.repository.full_name.split("/")[0]

    @property
    def repo_name(self) -> str:
        if self.repository.name:
            return self.repository.name
        return self.repository.full_name.split("/")[-1]


@dataclass(frozen=True)
class WebhookOutcome:
    """What happened to an accepted delivery. The sender always gets a 200."""

    status: str  # "enqueued" | "duplicate" | "ignored" | "enqueue_failed"
    job_id: Optional[str] = None
    detail: str = ""


def fallback_delivery_id(raw_body: bytes) -> str:
    """Stable stand-in for a missing X-GitHub-Delivery header."""
    return "body-" + hashlib.sha256(raw_body).hexdigest()[:BODY_DIGEST_LENGTH]


class WebhookDispatcher:
    """
    Turns verified pull_request deliveries into queued jobs.

    Args:
        queue: Destination queue.
        webhook_secret: Shared secret configured on the GitHub App.
    """

    def __init__(self, queue: JobQueue, webhook_secret: Optional[str]):
        self._queue = queue
        self._secret = webhook_secret

    async def handle(
        self,
        event_type: Optional[str],
        delivery_id: Optional[str],
        signature_header: Optional[str],
        raw_body: bytes,
    ) -> WebhookOutcome:
        """
        Process one webhook delivery.

        Raises:
            WebhookConfigurationError: No webhook secret configured.
            WebhookSignatureError: Signature missing or not matching.
            WebhookPayloadError: Body is not a JSON object, or a supported
                pull_request event is missing its repository.
        """
        # 1. Verify Signature
        if not self._secret:
            logger.error("GITHUB_WEBHOOK_SECRET is not configured")
            raise WebhookConfigurationError("Webhook secret not configured")
        if not signature_header:
            logger.warning("Webhook %s rejected: missing signature header", delivery_id)
            raise WebhookSignatureError("Missing signature header")
        if not verify_signature(raw_body, self._secret, signature_header):
            logger.warning("Webhook %s rejected: invalid signature", delivery_id)
            raise WebhookSignatureError("Invalid webhook signature")

        # 2. Parse Payload
        try:
            payload: Any = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("Failed to parse webhook payload %s: %s", delivery_id, exc)
            raise WebhookPayloadError("Invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise WebhookPayloadError("Webhook payload must be a JSON object")

        # 3. Filter
        if event_type != SUPPORTED_EVENT:
            logger.debug("Ignoring unsupported webhook event %s", event_type)
            return WebhookOutcome(status="ignored", detail=f"event {event_type}")

        action = payload.get("action")
        if action not in SUPPORTED_ACTIONS:
            logger.debug("Ignoring unsupported pull_request action %s", action)
            return WebhookOutcome(status="ignored", detail=f"action {action}")

        event = self._parse_event(payload)
        pr_number = event.pull_request.number if event.pull_request else None
        if pr_number is None or pr_number <= 0:
            logger.warning(
                "Missing or invalid PR number %s in %s payload for %s",
                pr_number,
                action,
                event.repository.full_name,
            )
            return WebhookOutcome(status="ignored", detail="missing PR number")

        # 4. Enqueue
        job = ScorePrJob(
            owner=event.owner,
            name=event.repo_name,
            pr_number=pr_number,
            installation_id=event.installation.id if event.installation else None,
            delivery_id=delivery_id or fallback_delivery_id(raw_body),
        )
        return await self._enqueue(job)

    @staticmethod
    def _parse_event(payload: Dict[str, Any]) -> PullRequestEvent:
        try:
            return PullRequestEvent.model_validate(payload)
        except ValidationError as exc:
            logger.error("Malformed pull_request payload: %s", exc)
            raise WebhookPayloadError("Malformed pull_request payload") from exc

    async def _enqueue(self, job: ScorePrJob) -> WebhookOutcome:
        job_id = job.job_id
        try:
            created = await self._queue.enqueue(job_id, job)
        except JobQueueError as exc:
            # Still acknowledged; a GitHub redelivery re-enqueues it
            logger.error("Failed to enqueue score_pr job %s: %s", job_id, exc)
            return WebhookOutcome(status="enqueue_failed", job_id=job_id, detail=str(exc))

        if not created:
            logger.info("Duplicate delivery for %s, job %s already queued", job.display_name, job_id)
            return WebhookOutcome(status="duplicate", job_id=job_id)

        logger.info("Enqueued score_pr job %s for %s", job_id, job.display_name)
        return WebhookOutcome(status="enqueued", job_id=job_id)

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from opentelemetry import trace

from app.services.repository import Repository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class LifecycleCoordinator:
    """Runs the cascades that one entity's transition triggers on another."""

    def __init__(self, repository: Repository, *, clock: Callable[[], datetime] | None = None) -> None:
        self.repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def on_job_declined(self, job_id: str) -> list[dict[str, Any]]:
        """Reject every application of ``job_id`` that is still pending.

        Each application is updated on its own with a pending-only guard, so an
        application accepted or rejected concurrently is left alone. A store
        failure part way through propagates; applications already rejected stay
        rejected.
        """
        with tracer.start_as_current_span("lifecycle.cascade_job_declined") as span:
            span.set_attribute("job.id", job_id)
            pending = await self.repository.list_applications(job_id=job_id, status="pending")
            rejected: list[dict[str, Any]] = []
            for application in pending:
                row = await self.repository.transition_application_status(
                    application["id"],
                    status="rejected",
                    from_status="pending",
                    updated_at=self._clock(),
                )
                if row is not None:
                    rejected.append(row)

            span.set_attribute("applications.rejected", len(rejected))
            logger.info(
                "job declined cascade job_id=%s pending=%s rejected=%s",
                job_id,
                len(pending),
                len(rejected),
            )
            return rejected

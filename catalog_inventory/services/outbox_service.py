"""
Outbox Service - Operator view of event delivery
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from catalog_inventory.models import OutboxEvent, OutboxStatus
from catalog_inventory.repositories import OutboxRepository
from catalog_inventory.utils.clock import utcnow
from catalog_inventory.utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class OutboxService:
    """Inspection and manual recovery of outbox rows"""

    def __init__(self, outbox_repo: Optional[OutboxRepository] = None):
        self.outbox_repo = outbox_repo or OutboxRepository()

    def get_stats(self) -> Dict[str, int]:
        counts = self.outbox_repo.count_by_status()
        return {status.value.lower(): count for status, count in counts.items()}

    def list_dead_letters(self, limit: int = 100) -> List[OutboxEvent]:
        return self.outbox_repo.list_by_status(OutboxStatus.FAILED, limit)

    def requeue(self, event_id: str) -> OutboxEvent:
        """
        Send a dead-lettered event back to PENDING

        Raises:
            NotFoundError: unknown event id
            ConflictError: the event is not dead-lettered
        """
        row = self.outbox_repo.get_by_event_id(event_id)
        if not row:
            raise NotFoundError(f"Outbox event {event_id} not found")
        if row.status != OutboxStatus.FAILED:
            raise ConflictError(f"Outbox event {event_id} is {row.status.value}, only FAILED events can be requeued")

        if not self.outbox_repo.requeue(event_id, utcnow()):
            raise ConflictError(f"Outbox event {event_id} changed state while requeueing")

        logger.warning(f"Dead-lettered event {event_id} requeued by operator")
        return self.outbox_repo.get_by_event_id(event_id)

    def purge_delivered(self, retention_hours: int) -> int:
        cutoff = utcnow() - timedelta(hours=retention_hours)
        count = self.outbox_repo.purge_delivered(cutoff)
        logger.info(f"Purged {count} delivered outbox event(s) older than {retention_hours}h")
        return count

"""
Outbox Repository Implementation

State transitions are conditional UPDATEs keyed on the current owner, so a
dispatcher whose lease has expired cannot overwrite the work of the
dispatcher that re-claimed the row.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import aliased

from catalog_inventory.database import db
from catalog_inventory.models import OutboxEvent, OutboxStatus
from .base import OutboxRepositoryInterface

IN_FLIGHT = (OutboxStatus.PENDING, OutboxStatus.CLAIMED)


class OutboxRepository(OutboxRepositoryInterface):
    """Concrete implementation of outbox repository"""

    def add(self, row: OutboxEvent) -> OutboxEvent:
        """Stage row in the current transaction; the caller commits"""
        db.session.add(row)
        return row

    def rollback(self):
        # Consumer failures can leave the shared session mid-transaction
        db.session.rollback()

    def get_by_id(self, row_id: int) -> Optional[OutboxEvent]:
        return db.session.get(OutboxEvent, row_id)

    def get_by_event_id(self, event_id: str) -> Optional[OutboxEvent]:
        return OutboxEvent.query.filter_by(event_id=event_id).first()

    def _claimable_condition(self, now: datetime):
        return or_(
            and_(OutboxEvent.status == OutboxStatus.PENDING, OutboxEvent.next_retry_at <= now),
            and_(OutboxEvent.status == OutboxStatus.CLAIMED, OutboxEvent.lease_expires_at <= now)
        )

    def find_claimable_ids(self, now: datetime, limit: int) -> List[int]:
        """
        Ids of rows ready for dispatch, oldest first.

        A row is held back while an earlier row of the same aggregate is still
        in flight, which keeps per-aggregate delivery in emission order.
        Dead-lettered rows do not hold back later ones.
        """
        earlier = aliased(OutboxEvent)
        blocked = select(earlier.id).where(
            earlier.aggregate_id == OutboxEvent.aggregate_id,
            earlier.aggregate_type == OutboxEvent.aggregate_type,
            earlier.status.in_(IN_FLIGHT),
            or_(
                earlier.occurred_at < OutboxEvent.occurred_at,
                and_(earlier.occurred_at == OutboxEvent.occurred_at, earlier.id < OutboxEvent.id)
            )
        ).exists()

        rows = db.session.execute(
            select(OutboxEvent.id)
            .where(self._claimable_condition(now), ~blocked)
            .order_by(OutboxEvent.occurred_at.asc(), OutboxEvent.id.asc())
            .limit(limit)
        ).scalars().all()
        db.session.commit()
        return list(rows)

    def claim(self, row_id: int, worker_id: str, now: datetime, lease_seconds: int) -> bool:
        """Atomically take ownership of a row; False if another dispatcher got it first"""
        try:
            count = OutboxEvent.query.filter(
                OutboxEvent.id == row_id,
                self._claimable_condition(now)
            ).update({
                'status': OutboxStatus.CLAIMED,
                'claimed_by': worker_id,
                'lease_expires_at': now + timedelta(seconds=lease_seconds),
                'attempts': OutboxEvent.attempts + 1,
                'updated_at': now,
            }, synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return count == 1

    def _owned(self, row_id: int, worker_id: str):
        return OutboxEvent.query.filter(
            OutboxEvent.id == row_id,
            OutboxEvent.status == OutboxStatus.CLAIMED,
            OutboxEvent.claimed_by == worker_id
        )

    def _update_owned(self, row_id: int, worker_id: str, values: dict) -> bool:
        try:
            count = self._owned(row_id, worker_id).update(values, synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return count == 1

    def record_consumer_ack(self, row_id: int, worker_id: str, consumer_name: str, now: datetime) -> bool:
        row = self._owned(row_id, worker_id).first()
        if row is None:
            db.session.rollback()
            return False
        delivered_to = list(row.delivered_to or [])
        if consumer_name not in delivered_to:
            delivered_to.append(consumer_name)
        return self._update_owned(row_id, worker_id, {'delivered_to': delivered_to, 'updated_at': now})

    def mark_delivered(self, row_id: int, worker_id: str, now: datetime) -> bool:
        return self._update_owned(row_id, worker_id, {
            'status': OutboxStatus.DELIVERED,
            'claimed_by': None,
            'lease_expires_at': None,
            'last_error': None,
            'delivered_at': now,
            'updated_at': now,
        })

    def mark_for_retry(self, row_id: int, worker_id: str, next_retry_at: datetime, error: str, now: datetime) -> bool:
        return self._update_owned(row_id, worker_id, {
            'status': OutboxStatus.PENDING,
            'claimed_by': None,
            'lease_expires_at': None,
            'next_retry_at': next_retry_at,
            'last_error': error,
            'updated_at': now,
        })

    def mark_dead_lettered(self, row_id: int, worker_id: str, error: str, now: datetime) -> bool:
        return self._update_owned(row_id, worker_id, {
            'status': OutboxStatus.FAILED,
            'claimed_by': None,
            'lease_expires_at': None,
            'last_error': error,
            'updated_at': now,
        })

    def requeue(self, event_id: str, now: datetime) -> bool:
        """Return a dead-lettered row to PENDING with its attempt count reset"""
        try:
            count = OutboxEvent.query.filter(
                OutboxEvent.event_id == event_id,
                OutboxEvent.status == OutboxStatus.FAILED
            ).update({
                'status': OutboxStatus.PENDING,
                'attempts': 0,
                'next_retry_at': now,
                'updated_at': now,
            }, synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return count == 1

    def list_by_status(self, status: OutboxStatus, limit: int = 100) -> List[OutboxEvent]:
        return OutboxEvent.query.filter_by(status=status).order_by(
            OutboxEvent.occurred_at.asc(), OutboxEvent.id.asc()
        ).limit(limit).all()

    def count_by_status(self) -> Dict[OutboxStatus, int]:
        rows = db.session.query(OutboxEvent.status, func.count(OutboxEvent.id)).group_by(OutboxEvent.status).all()
        counts = {status: 0 for status in OutboxStatus}
        counts.update({status: count for status, count in rows})
        return counts

    def purge_delivered(self, delivered_before: datetime) -> int:
        """Delete delivered rows older than the cutoff"""
        try:
            count = OutboxEvent.query.filter(
                OutboxEvent.status == OutboxStatus.DELIVERED,
                OutboxEvent.delivered_at < delivered_before
            ).delete(synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return count

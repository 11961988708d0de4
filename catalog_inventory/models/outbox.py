"""
Outbox Event Model
"""

from catalog_inventory.database import db
from catalog_inventory.models.enums import OutboxStatus
from catalog_inventory.utils.clock import utcnow


class OutboxEvent(db.Model):
    """
    Durable record of an emitted event.

    Written in the same transaction as the state change that produced it and
    dispatched separately. A row is owned by at most one dispatcher at a time
    through the claim lease.
    """
    __tablename__ = 'outbox_events'
    __table_args__ = (
        db.Index('ix_outbox_events_status_next_retry', 'status', 'next_retry_at'),
        db.Index('ix_outbox_events_aggregate_order', 'aggregate_id', 'occurred_at', 'id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.String(36), unique=True, nullable=False, index=True)
    event_type = db.Column(db.String(100), nullable=False)
    schema_version = db.Column(db.Integer, nullable=False, default=1)
    aggregate_type = db.Column(db.String(50), nullable=False)
    aggregate_id = db.Column(db.String(64), nullable=False)
    correlation_id = db.Column(db.String(64), nullable=True)
    payload = db.Column(db.JSON, nullable=False)
    status = db.Column(db.Enum(OutboxStatus), default=OutboxStatus.PENDING, nullable=False)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    next_retry_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    claimed_by = db.Column(db.String(100), nullable=True)
    lease_expires_at = db.Column(db.DateTime, nullable=True)
    delivered_to = db.Column(db.JSON, nullable=False, default=list)
    last_error = db.Column(db.Text, nullable=True)
    occurred_at = db.Column(db.DateTime, nullable=False)
    delivered_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f'<OutboxEvent {self.event_type} {self.event_id} {self.status.value}>'

    @property
    def is_dead_lettered(self):
        return self.status == OutboxStatus.FAILED

    def to_dict(self):
        return {
            'id': self.id,
            'eventId': self.event_id,
            'eventType': self.event_type,
            'schemaVersion': self.schema_version,
            'aggregateType': self.aggregate_type,
            'aggregateId': self.aggregate_id,
            'correlationId': self.correlation_id,
            'payload': self.payload,
            'status': self.status.value,
            'attempts': self.attempts,
            'nextRetryAt': self.next_retry_at.isoformat() if self.next_retry_at else None,
            'claimedBy': self.claimed_by,
            'leaseExpiresAt': self.lease_expires_at.isoformat() if self.lease_expires_at else None,
            'deliveredTo': self.delivered_to or [],
            'lastError': self.last_error,
            'occurredAt': self.occurred_at.isoformat(),
            'deliveredAt': self.delivered_at.isoformat() if self.delivered_at else None,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat()
        }

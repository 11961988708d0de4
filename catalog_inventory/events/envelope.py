"""
Event envelope and versioned payload schemas

Every event travels as an EventEnvelope whose ``data`` is one member of a
tagged union keyed by ``(event_type, schema_version)``. Each key maps to a
marshmallow schema that loads the JSON payload back into a frozen dataclass.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

from marshmallow import Schema, fields, post_load, validate
from marshmallow import ValidationError as SchemaValidationError

from catalog_inventory.utils.clock import utcnow
from catalog_inventory.utils.exceptions import UnknownEventTypeError, ValidationError

PRODUCT_CREATED = 'product.created'
PRODUCT_VARIATIONS_ADDED = 'product.variations_added'


@dataclass(frozen=True)
class ProductCreated:
    """A product and its initial variations were committed"""
    EVENT_TYPE: ClassVar[str] = PRODUCT_CREATED
    SCHEMA_VERSION: ClassVar[int] = 1

    product_id: int
    variation_ids: Tuple[int, ...]
    merchant_id: int


@dataclass(frozen=True)
class ProductVariationsAdded:
    """Variations were added to an existing product"""
    EVENT_TYPE: ClassVar[str] = PRODUCT_VARIATIONS_ADDED
    SCHEMA_VERSION: ClassVar[int] = 1

    product_id: int
    variation_ids: Tuple[int, ...]
    merchant_id: int


class ProductCreatedSchema(Schema):
    product_id = fields.Int(required=True, strict=True, data_key='productId')
    variation_ids = fields.List(fields.Int(strict=True), required=True, data_key='variationIds')
    merchant_id = fields.Int(required=True, strict=True, data_key='merchantId')

    @post_load
    def make_event(self, data, **kwargs):
        return ProductCreated(
            product_id=data['product_id'],
            variation_ids=tuple(data['variation_ids']),
            merchant_id=data['merchant_id']
        )


class ProductVariationsAddedSchema(Schema):
    product_id = fields.Int(required=True, strict=True, data_key='productId')
    variation_ids = fields.List(
        fields.Int(strict=True),
        required=True,
        validate=validate.Length(min=1),
        data_key='variationIds'
    )
    merchant_id = fields.Int(required=True, strict=True, data_key='merchantId')

    @post_load
    def make_event(self, data, **kwargs):
        return ProductVariationsAdded(
            product_id=data['product_id'],
            variation_ids=tuple(data['variation_ids']),
            merchant_id=data['merchant_id']
        )


# (event_type, schema_version) -> payload schema
EVENT_SCHEMAS = {
    (PRODUCT_CREATED, 1): ProductCreatedSchema,
    (PRODUCT_VARIATIONS_ADDED, 1): ProductVariationsAddedSchema,
}


@dataclass(frozen=True)
class EventEnvelope:
    event_id: str
    event_type: str
    schema_version: int
    aggregate_type: str
    aggregate_id: str
    occurred_at: datetime
    data: Any
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _get_schema(event_type: str, schema_version: int) -> Schema:
    schema_cls = EVENT_SCHEMAS.get((event_type, schema_version))
    if schema_cls is None:
        raise UnknownEventTypeError(
            f"No schema registered for {event_type} v{schema_version}",
            details={'eventType': event_type, 'schemaVersion': schema_version}
        )
    return schema_cls()


def new_envelope(event, aggregate_type: str, aggregate_id, correlation_id: Optional[str] = None,
                 occurred_at: Optional[datetime] = None) -> EventEnvelope:
    """Wrap a payload dataclass in a fresh envelope with a unique event id"""
    return EventEnvelope(
        event_id=str(uuid.uuid4()),
        event_type=event.EVENT_TYPE,
        schema_version=event.SCHEMA_VERSION,
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id),
        occurred_at=occurred_at or utcnow(),
        data=event,
        correlation_id=correlation_id
    )


def encode_payload(envelope: EventEnvelope) -> Dict[str, Any]:
    return _get_schema(envelope.event_type, envelope.schema_version).dump(envelope.data)


def decode_payload(event_type: str, schema_version: int, payload: Dict[str, Any]):
    """
    Load a stored payload into its dataclass.

    Raises:
        UnknownEventTypeError: no schema for the type/version pair
        ValidationError: payload does not match the schema
    """
    schema = _get_schema(event_type, schema_version)
    try:
        return schema.load(payload)
    except SchemaValidationError as e:
        raise ValidationError(
            f"Malformed {event_type} v{schema_version} payload",
            details=e.messages
        )


def envelope_from_outbox(row) -> EventEnvelope:
    """Rebuild the envelope stored in an outbox row"""
    return EventEnvelope(
        event_id=row.event_id,
        event_type=row.event_type,
        schema_version=row.schema_version,
        aggregate_type=row.aggregate_type,
        aggregate_id=row.aggregate_id,
        occurred_at=row.occurred_at,
        data=decode_payload(row.event_type, row.schema_version, row.payload),
        correlation_id=row.correlation_id,
        metadata={'attempts': row.attempts}
    )

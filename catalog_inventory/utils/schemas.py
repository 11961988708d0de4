from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from catalog_inventory.models import VariationType


class StrippedSchema(Schema):
    """Strips surrounding whitespace from string inputs before validation"""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {key: value.strip() if isinstance(value, str) else value for key, value in data.items()}


class VariationRequestSchema(StrippedSchema):
    """Schema for a product variation in create/add requests"""
    size_code = fields.Str(allow_none=True, validate=validate.Length(min=1, max=20), data_key='sizeCode')
    color_name = fields.Str(allow_none=True, validate=validate.Length(min=1, max=50), data_key='colorName')
    image_urls = fields.List(fields.Url(), load_default=list, data_key='imageUrls')


class ProductCreateRequestSchema(StrippedSchema):
    """Schema for creating products"""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    code = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True, load_default=None)
    about = fields.List(fields.Str(), load_default=list)
    details = fields.Dict(allow_none=True, load_default=None)
    variation_type = fields.Str(
        load_default=VariationType.NONE.value,
        validate=validate.OneOf([vt.value for vt in VariationType]),
        data_key='variationType'
    )
    category_id = fields.Int(required=True, strict=True, validate=validate.Range(min=1), data_key='categoryId')
    is_active = fields.Bool(load_default=True, data_key='isActive')
    variations = fields.List(fields.Nested(VariationRequestSchema), load_default=None)


class VariationsAddRequestSchema(Schema):
    """Schema for adding variations to an existing product"""

    class Meta:
        unknown = EXCLUDE

    variations = fields.List(
        fields.Nested(VariationRequestSchema),
        required=True,
        validate=validate.Length(min=1, max=100)
    )


class StockUpdateRequestSchema(Schema):
    """Schema for stock updates"""
    quantity = fields.Int(required=True, strict=True)


class InventoryLookupSchema(Schema):
    """Query parameters for inventory lookup by variation"""

    class Meta:
        unknown = EXCLUDE

    country_code = fields.Str(validate=validate.Regexp(r'^[A-Za-z]{2}$'), data_key='countryCode')


class DeadLetterQuerySchema(Schema):
    """Query parameters for dead-letter listing"""

    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(validate=validate.Range(min=1, max=500), load_default=100)

from marshmallow import fields, validate, EXCLUDE

from connyvet.extensions.ma import ma
from connyvet.models.payment_intent import INTENT_PROVIDERS, INTENT_STATUSES

# Montos en pesos, sin decimales
MAX_INTENT_AMOUNT = 999_999_999_999


class PaymentIntentCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    patient_id = fields.Integer(required=False, allow_none=True, load_default=None)
    tutor_id = fields.Integer(required=False, allow_none=True, load_default=None)
    consultation_id = fields.Integer(required=False, allow_none=True, load_default=None)

    amount_total = fields.Integer(
        required=True,
        validate=validate.Range(min=1, max=MAX_INTENT_AMOUNT),
    )
    currency = fields.String(
        required=False,
        load_default="CLP",
        validate=validate.Length(equal=3),
    )
    provider = fields.String(
        required=False,
        load_default="manual",
        validate=validate.OneOf(INTENT_PROVIDERS),
    )
    title = fields.String(required=False, allow_none=True, validate=validate.Length(max=255))
    description = fields.String(required=False, allow_none=True, validate=validate.Length(max=5000))
    meta = fields.Dict(required=False, allow_none=True, load_default=None)


class PaymentIntentStartSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    provider = fields.String(
        required=False,
        allow_none=True,
        load_default=None,
        validate=validate.OneOf(INTENT_PROVIDERS),
    )
    return_url = fields.String(required=False, allow_none=True, validate=validate.Length(max=255))
    redirect_url = fields.String(required=False, allow_none=True, validate=validate.Length(max=255))
    origin = fields.String(required=False, allow_none=True, validate=validate.Length(max=120))


class MarkManualPaidSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    amount = fields.Integer(
        required=True,
        validate=validate.Range(min=1, max=MAX_INTENT_AMOUNT),
    )
    note = fields.String(required=False, allow_none=True, validate=validate.Length(max=500))
    # nro de transferencia, boleta
    reference = fields.String(required=False, allow_none=True, validate=validate.Length(max=120))


class PaymentIntentCancelSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    note = fields.String(
        required=False,
        allow_none=True,
        load_default=None,
        validate=validate.Length(max=500),
    )


class PaymentIntentListQuerySchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    patient_id = fields.Integer(required=False, load_default=None)
    tutor_id = fields.Integer(required=False, load_default=None)
    consultation_id = fields.Integer(required=False, load_default=None)
    status = fields.String(
        required=False,
        load_default=None,
        validate=validate.OneOf(INTENT_STATUSES),
    )
    page = fields.Raw(required=False, load_default=1)
    per_page = fields.Raw(required=False, load_default=None)

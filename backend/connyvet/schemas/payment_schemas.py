from decimal import Decimal

from marshmallow import fields, validate, validates, validates_schema, ValidationError, EXCLUDE

from connyvet.extensions.ma import ma
from connyvet.models.payment import PAYMENT_METHODS, PAYMENT_STATUSES, PaymentStatus

# Tope de la columna Numeric(10, 2)
MAX_AMOUNT = Decimal("99999999.99")


class _PaymentBaseSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    concept = fields.String(required=True, validate=validate.Length(min=1, max=255))
    amount = fields.Decimal(
        required=True,
        places=2,
        validate=[
            validate.Range(min=0, error="El monto no puede ser negativo."),
            validate.Range(max=MAX_AMOUNT, error="El monto no puede superar {max}."),
        ],
    )
    method = fields.String(
        required=False,
        allow_none=True,
        validate=validate.OneOf(PAYMENT_METHODS),
    )
    notes = fields.String(required=False, allow_none=True)

    @validates("concept")
    def validar_concepto(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("El concepto no puede quedar en blanco.")


class PaymentCreateSchema(_PaymentBaseSchema):
    """
    Alta de un cobro. Siempre nace pendiente: pagar o anular se hace
    con sus propias operaciones (mark-paid / cancel).
    """

    patient_id = fields.Integer(required=True)
    tutor_id = fields.Integer(required=False, allow_none=True, load_default=None)

    consultation_id = fields.Integer(required=False, allow_none=True, load_default=None)
    vaccine_application_id = fields.Integer(required=False, allow_none=True, load_default=None)
    hospitalization_id = fields.Integer(required=False, allow_none=True, load_default=None)

    status = fields.String(
        required=False,
        load_default=PaymentStatus.PENDING.value,
        validate=validate.OneOf(
            [PaymentStatus.PENDING.value],
            error="Un pago se crea pendiente; usa mark-paid o cancel para cambiar su estado.",
        ),
    )


class PaymentUpdateSchema(_PaymentBaseSchema):
    """
    Edición de un pago pendiente. Los campos ausentes no se tocan; con
    PATCH se carga con ``partial=True``.
    """

    status = fields.String(
        required=False,
        validate=validate.OneOf(PAYMENT_STATUSES),
    )
    # solo se usa si el cambio de estado es una anulación
    reason = fields.String(
        required=False,
        allow_none=True,
        validate=validate.Length(max=255),
    )


class PaymentMarkPaidSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    method = fields.String(
        required=False,
        allow_none=True,
        load_default=None,
        validate=validate.OneOf(PAYMENT_METHODS),
    )
    notes = fields.String(required=False, allow_none=True, load_default=None)


class PaymentCancelSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    reason = fields.String(
        required=False,
        allow_none=True,
        load_default=None,
        validate=validate.Length(max=255),
    )


class PaymentListQuerySchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    patient_id = fields.Integer(required=False, load_default=None)
    tutor_id = fields.Integer(required=False, load_default=None)
    status = fields.String(
        required=False,
        load_default=None,
        validate=validate.OneOf(PAYMENT_STATUSES + ["all"]),
    )
    # "from" es palabra reservada: se expone con data_key
    date_from = fields.Date(required=False, load_default=None, data_key="from")
    date_to = fields.Date(required=False, load_default=None, data_key="to")
    page = fields.Raw(required=False, load_default=1)
    per_page = fields.Raw(required=False, load_default=None)

    @validates_schema
    def validar_rango(self, data, **kwargs):
        desde = data.get("date_from")
        hasta = data.get("date_to")
        if desde and hasta and hasta < desde:
            raise ValidationError(
                "La fecha 'to' debe ser mayor o igual que 'from'",
                field_name="to",
            )

from marshmallow import fields, EXCLUDE
from connyvet.extensions import ma


class LoginSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

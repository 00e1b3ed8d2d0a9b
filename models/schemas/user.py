from marshmallow import Schema, fields, pre_load, validates, ValidationError

from security.passwords import MAX_PASSWORD_BYTES


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


class UserCreateSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
    expires_in_seconds = fields.Integer(allow_none=True, load_default=None)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class UserUpdateSchema(Schema):
    email = fields.Email(allow_none=True)
    password = fields.String(allow_none=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and data.get("email"):
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if value is not None:
            _check_password(value)


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String(allow_none=False)
    is_chirpy_red = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

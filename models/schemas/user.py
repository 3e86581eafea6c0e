from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

MIN_PASSWORD_LENGTH = 8


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=2, max=120))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        # Email is stored as typed (case-sensitive); only surrounding whitespace goes.
        if isinstance(data, dict):
            data = dict(data)
            for key in ("name", "email"):
                if key in data:
                    data[key] = _strip(data[key])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
    remember_me = fields.Boolean(load_default=False)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _strip(data["email"])
            # Browser clients send camelCase
            if "rememberMe" in data and "remember_me" not in data:
                data["remember_me"] = data.pop("rememberMe")
        return data


class PasswordChangeSchema(Schema):
    current_password = fields.String(required=True, load_only=True)
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _check_password(value)


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    name = fields.String()
    email = fields.String()
    created_at = fields.DateTime()

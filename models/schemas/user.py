from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates

from models.schemas.common import (
    normalize_identifier,
    validate_password_strength,
    validate_phone,
    validate_username,
)


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=255))
    username = fields.String(required=True, validate=validate.Length(min=3, max=100))
    password = fields.String(required=True, load_only=True)
    full_name = fields.String(allow_none=True, validate=validate.Length(max=200))
    phone_number = fields.String(allow_none=True, validate=validate.Length(max=20))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            for key in ("email", "username"):
                if key in data:
                    data[key] = normalize_identifier(data[key])
        return data

    @validates("username")
    def check_username(self, value, **kwargs):
        validate_username(value)

    @validates("password")
    def check_password(self, value, **kwargs):
        validate_password_strength(value)

    @validates("phone_number")
    def check_phone_number(self, value, **kwargs):
        validate_phone(value)


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username_or_email = fields.String(required=True, validate=validate.Length(min=1, max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    remember_me = fields.Boolean(load_default=False)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "username_or_email" in data:
            data = dict(data)
            data["username_or_email"] = normalize_identifier(data["username_or_email"])
        return data


class RefreshTokenSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class ChangePasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    current_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def check_new_password(self, value, **kwargs):
        validate_password_strength(value, label="New password")


class UpdateUserSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(allow_none=True, validate=validate.Length(max=200))
    avatar_url = fields.Url(allow_none=True, validate=validate.Length(max=500))
    phone_number = fields.String(allow_none=True, validate=validate.Length(max=20))

    @pre_load
    def blank_to_none(self, data, **kwargs):
        # blank means "leave unchanged", not "invalid"
        if isinstance(data, dict):
            data = {
                key: None if isinstance(value, str) and not value.strip() else value
                for key, value in data.items()
            }
        return data

    @validates("phone_number")
    def check_phone_number(self, value, **kwargs):
        validate_phone(value)


class ResetPasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=255))


class ConfirmResetPasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def check_new_password(self, value, **kwargs):
        validate_password_strength(value, label="New password")


class UserInfoSchema(Schema):
    id = fields.String()
    email = fields.String()
    username = fields.String()
    full_name = fields.String(allow_none=True)
    avatar_url = fields.String(allow_none=True)
    phone_number = fields.String(allow_none=True)
    email_verified = fields.Boolean()
    is_active = fields.Boolean()
    created_at = fields.DateTime()
    last_login_at = fields.DateTime(allow_none=True)
    roles = fields.List(fields.String())


class AuthResponseSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.String(dump_default="bearer")
    expires_at = fields.DateTime()
    user = fields.Nested(UserInfoSchema)

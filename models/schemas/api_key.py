import re

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate, validates

from models.base_model import utcnow
from models.schemas.common import to_naive_utc

KEY_NAME_RE = re.compile(r"^[a-zA-Z0-9\s_-]+$")
SCOPE_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class ApiKeyCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    scopes = fields.List(fields.String(), required=True)
    expires_at = fields.DateTime(allow_none=True)

    @validates("name")
    def check_name(self, value, **kwargs):
        if not KEY_NAME_RE.match(value):
            raise ValidationError(
                "Key name can only contain letters, numbers, spaces, underscores, and hyphens"
            )

    @validates("scopes")
    def check_scopes(self, value, **kwargs):
        if not value:
            raise ValidationError("At least one scope must be specified")
        if any(not s or not s.strip() for s in value):
            raise ValidationError("All scopes must be non-empty")
        if any(not SCOPE_RE.match(s) for s in value):
            raise ValidationError("Scopes can only contain letters, numbers, underscores, and hyphens")

    @post_load
    def normalize_expiry(self, data, **kwargs):
        expires_at = to_naive_utc(data.get("expires_at"))
        if expires_at is not None and expires_at <= utcnow():
            raise ValidationError("Expiration date must be in the future", field_name="expires_at")
        data["expires_at"] = expires_at
        return data


class ApiKeyOutSchema(Schema):
    """Metadata only; neither the raw key nor its hash ever leaves through here."""

    id = fields.String()
    name = fields.String()
    prefix = fields.String()
    scopes = fields.List(fields.String())
    expires_at = fields.DateTime(allow_none=True)
    last_used_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()
    is_active = fields.Method("get_is_active")

    def get_is_active(self, obj):
        return obj.is_active()


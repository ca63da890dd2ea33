from marshmallow import fields
from doodba.types.base import BaseSchema
from doodba.types.models.database import Database
from doodba.types.schemas.key_selector import (
    ConfigMapKeySelectorSchema,
    SecretKeySelectorSchema,
)


class DatabaseSchema(BaseSchema):
    """Where and how to reach the PostgreSQL server."""

    __model__ = Database

    host = fields.Nested(
        ConfigMapKeySelectorSchema(), data_key="host", allow_none=True, load_default=None
    )
    port = fields.Nested(
        ConfigMapKeySelectorSchema(), data_key="port", allow_none=True, load_default=None
    )
    username = fields.Nested(
        SecretKeySelectorSchema(), data_key="username", allow_none=True, load_default=None
    )
    password = fields.Nested(
        SecretKeySelectorSchema(), data_key="password", allow_none=True, load_default=None
    )
    database = fields.Str(data_key="database", allow_none=True, load_default=None)

from marshmallow import fields
from doodba.types.base import BaseSchema
from doodba.types.models.key_selector import ConfigMapKeySelector, SecretKeySelector


class ConfigMapKeySelectorSchema(BaseSchema):
    __model__ = ConfigMapKeySelector

    name = fields.Str(data_key="name", required=True)
    key = fields.Str(data_key="key", required=True)
    optional = fields.Bool(data_key="optional", allow_none=True, load_default=None)


class SecretKeySelectorSchema(ConfigMapKeySelectorSchema):
    __model__ = SecretKeySelector

from marshmallow import fields
from doodba.types.base import BaseSchema
from doodba.types.models.config import DoodbaConfig
from doodba.types.schemas.key_selector import SecretKeySelectorSchema


class DoodbaConfigSchema(BaseSchema):
    __model__ = DoodbaConfig

    without_demo = fields.Bool(data_key="withoutDemo", load_default=True)
    list_database = fields.Bool(data_key="listDatabase", load_default=False)
    proxy_mode = fields.Bool(data_key="proxyMode", load_default=True)
    db_filter = fields.Str(data_key="dbFilter", allow_none=True, load_default=None)
    admin_password = fields.Nested(
        SecretKeySelectorSchema(),
        data_key="adminPassword",
        allow_none=True,
        load_default=None,
    )

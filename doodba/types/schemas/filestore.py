from marshmallow import fields
from doodba.types.base import BaseSchema
from doodba.types.models.filestore import FileStore


class FileStoreSchema(BaseSchema):
    __model__ = FileStore

    access_modes = fields.List(
        fields.Str(), data_key="accessModes", load_default=lambda: ["ReadWriteOnce"]
    )
    size = fields.Str(data_key="size", load_default="1Gi")
    storage_class_name = fields.Str(
        data_key="storageClassName", allow_none=True, load_default=None
    )
    existing_claim = fields.Str(
        data_key="existingClaim", allow_none=True, load_default=None
    )
    annotations = fields.Dict(
        keys=fields.Str(), values=fields.Str(), data_key="annotations", load_default=dict
    )

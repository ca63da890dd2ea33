from marshmallow import fields
from doodba.types.base import ManifestSchema
from doodba.types.models.doodba_status import DoodbaStatus


class DoodbaStatusSchema(ManifestSchema):
    """Status subresource as stored on the API server."""

    __model__ = DoodbaStatus

    phase = fields.Str(data_key="phase", load_default="Pending")
    ready = fields.Bool(data_key="ready", load_default=False)
    before_create_job = fields.Str(
        data_key="beforeCreateJob", allow_none=True, load_default=None
    )
    before_update_job = fields.Str(
        data_key="beforeUpdateJob", allow_none=True, load_default=None
    )
    last_applied_image = fields.Str(
        data_key="lastAppliedImage", allow_none=True, load_default=None
    )
    observed_generation = fields.Int(
        data_key="observedGeneration", allow_none=True, load_default=None
    )

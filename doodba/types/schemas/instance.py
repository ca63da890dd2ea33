from marshmallow import fields, validate
from doodba.types.base import BaseSchema
from doodba.types.models.instance import Instance, InstanceIngress, Scheduling


class InstanceIngressSchema(BaseSchema):
    __model__ = InstanceIngress

    enabled = fields.Bool(data_key="enabled", load_default=True)
    hosts = fields.List(fields.Str(), data_key="hosts", load_default=list)
    port = fields.Int(data_key="port", load_default=8069)
    annotations = fields.Dict(
        keys=fields.Str(), values=fields.Str(), data_key="annotations", load_default=dict
    )


class SchedulingSchema(BaseSchema):
    __model__ = Scheduling

    resources = fields.Dict(data_key="resources", allow_none=True, load_default=None)
    node_selector = fields.Dict(
        keys=fields.Str(),
        values=fields.Str(),
        data_key="nodeSelector",
        allow_none=True,
        load_default=None,
    )
    affinity = fields.Dict(data_key="affinity", allow_none=True, load_default=None)


class InstanceSchema(BaseSchema):
    __model__ = Instance

    name = fields.Str(data_key="name", required=True)
    enabled = fields.Bool(data_key="enabled", load_default=True)
    replicas = fields.Int(
        data_key="replicas", load_default=1, validate=validate.Range(min=0)
    )
    command = fields.Str(data_key="command", allow_none=True, load_default=None)
    extra_config = fields.Str(data_key="extraConfig", allow_none=True, load_default=None)
    extra_env = fields.List(fields.Dict(), data_key="extraEnv", load_default=list)
    security_context = fields.Dict(
        data_key="securityContext", allow_none=True, load_default=None
    )
    pod_security_context = fields.Dict(
        data_key="podSecurityContext", allow_none=True, load_default=None
    )
    pod_annotations = fields.Dict(
        keys=fields.Str(),
        values=fields.Str(),
        data_key="podAnnotations",
        load_default=dict,
    )
    scheduling = fields.Nested(
        SchedulingSchema(), data_key="scheduling", allow_none=True, load_default=None
    )
    scale_during_upgrade = fields.Bool(data_key="scaleDuringUpgrade", load_default=False)
    ports = fields.List(fields.Dict(), data_key="ports", load_default=list)
    ingress = fields.List(
        fields.Nested(InstanceIngressSchema()), data_key="ingress", load_default=list
    )

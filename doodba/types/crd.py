"""CustomResourceDefinition for the Doodba kind."""

from typing import Dict

GROUP = "doodba.glo.systems"
VERSION = "v1"
KIND = "Doodba"
PLURAL = "doodbas"
SINGULAR = "doodba"
SHORT_NAMES = ["odoo"]


def _preserve(description: str = None) -> Dict:
    schema = {"type": "object", "x-kubernetes-preserve-unknown-fields": True}
    if description:
        schema["description"] = description
    return schema


def _list_of(items: Dict) -> Dict:
    return {"type": "array", "items": items}


def _key_selector() -> Dict:
    return {
        "type": "object",
        "required": ["name", "key"],
        "properties": {
            "name": {"type": "string"},
            "key": {"type": "string"},
            "optional": {"type": "boolean"},
        },
    }


_STRING = {"type": "string"}
_BOOL = {"type": "boolean"}
_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}

_INSTANCE = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": _STRING,
        "enabled": {"type": "boolean", "default": True},
        "replicas": {"type": "integer", "minimum": 0, "default": 1},
        "command": _STRING,
        "extraConfig": _STRING,
        "extraEnv": _list_of(_preserve()),
        "securityContext": _preserve(),
        "podSecurityContext": _preserve(),
        "podAnnotations": _STRING_MAP,
        "scheduling": {
            "type": "object",
            "properties": {
                "resources": _preserve(),
                "nodeSelector": _STRING_MAP,
                "affinity": _preserve(),
            },
        },
        "scaleDuringUpgrade": {"type": "boolean", "default": False},
        "ports": _list_of(_preserve()),
        "ingress": _list_of(
            {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean", "default": True},
                    "hosts": _list_of(_STRING),
                    "port": {"type": "integer"},
                    "annotations": _STRING_MAP,
                },
            }
        ),
    },
}

_SPEC = {
    "type": "object",
    "required": ["image", "tag"],
    "properties": {
        "image": _STRING,
        "tag": _STRING,
        "imagePullPolicy": _STRING,
        "database": {
            "type": "object",
            "properties": {
                "host": _key_selector(),
                "port": _key_selector(),
                "username": _key_selector(),
                "password": _key_selector(),
                "database": _STRING,
            },
        },
        "filestore": {
            "type": "object",
            "properties": {
                "accessModes": _list_of(_STRING),
                "size": _STRING,
                "storageClassName": _STRING,
                "existingClaim": _STRING,
                "annotations": _STRING_MAP,
            },
        },
        "config": {
            "type": "object",
            "properties": {
                "withoutDemo": _BOOL,
                "listDatabase": _BOOL,
                "proxyMode": _BOOL,
                "dbFilter": _STRING,
                "adminPassword": _key_selector(),
            },
        },
        "extraEnv": _list_of(_preserve()),
        "extraVolumes": _list_of(_preserve()),
        "extraVolumeMounts": _list_of(_preserve()),
        "suspend": {"type": "boolean", "default": False},
        "instances": _list_of(_INSTANCE),
        "beforeCreate": _STRING,
        "beforeUpdate": _STRING,
    },
}

_STATUS = {
    "type": "object",
    "properties": {
        "phase": _STRING,
        "ready": _BOOL,
        "beforeCreateJob": _STRING,
        "beforeUpdateJob": _STRING,
        "lastAppliedImage": _STRING,
        "observedGeneration": {"type": "integer"},
    },
}


def custom_resource_definition() -> Dict:
    """Build the CRD document registered for the Doodba kind."""
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{PLURAL}.{GROUP}"},
        "spec": {
            "group": GROUP,
            "scope": "Namespaced",
            "names": {
                "kind": KIND,
                "plural": PLURAL,
                "singular": SINGULAR,
                "shortNames": list(SHORT_NAMES),
            },
            "versions": [
                {
                    "name": VERSION,
                    "served": True,
                    "storage": True,
                    "subresources": {"status": {}},
                    "additionalPrinterColumns": [
                        {
                            "name": "Phase",
                            "type": "string",
                            "jsonPath": ".status.phase",
                        },
                        {
                            "name": "Ready",
                            "type": "boolean",
                            "jsonPath": ".status.ready",
                        },
                        {
                            "name": "Image",
                            "type": "string",
                            "jsonPath": ".status.lastAppliedImage",
                        },
                        {
                            "name": "Age",
                            "type": "date",
                            "jsonPath": ".metadata.creationTimestamp",
                        },
                    ],
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "required": ["spec"],
                            "properties": {
                                "spec": _SPEC,
                                "status": _STATUS,
                            },
                        }
                    },
                }
            ],
        },
    }

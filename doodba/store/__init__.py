from .base import (
    ObjectKind,
    ObjectStore,
    DOODBA,
    JOB,
    DEPLOYMENT,
    SERVICE,
    CONFIG_MAP,
    PERSISTENT_VOLUME_CLAIM,
    INGRESS,
)
from .kubernetes import KubernetesObjectStore, FIELD_MANAGER

__all__ = [
    "ObjectKind",
    "ObjectStore",
    "KubernetesObjectStore",
    "FIELD_MANAGER",
    "DOODBA",
    "JOB",
    "DEPLOYMENT",
    "SERVICE",
    "CONFIG_MAP",
    "PERSISTENT_VOLUME_CLAIM",
    "INGRESS",
]

from .key_selector import ConfigMapKeySelectorSchema, SecretKeySelectorSchema
from .database import DatabaseSchema
from .filestore import FileStoreSchema
from .config import DoodbaConfigSchema
from .instance import InstanceSchema, InstanceIngressSchema, SchedulingSchema
from .doodba_spec import DoodbaSpecSchema
from .doodba_status import DoodbaStatusSchema

__all__ = [
    "ConfigMapKeySelectorSchema",
    "SecretKeySelectorSchema",
    "DatabaseSchema",
    "FileStoreSchema",
    "DoodbaConfigSchema",
    "InstanceSchema",
    "InstanceIngressSchema",
    "SchedulingSchema",
    "DoodbaSpecSchema",
    "DoodbaStatusSchema",
]

from .key_selector import KeySelector, ConfigMapKeySelector, SecretKeySelector
from .database import Database
from .filestore import FileStore
from .config import DoodbaConfig
from .instance import Instance, InstanceIngress, Scheduling
from .doodba_spec import DoodbaSpec
from .doodba_status import DoodbaPhase, DoodbaStatus
from .doodba_resources import DoodbaResources, Hook

__all__ = [
    "KeySelector",
    "ConfigMapKeySelector",
    "SecretKeySelector",
    "Database",
    "FileStore",
    "DoodbaConfig",
    "Instance",
    "InstanceIngress",
    "Scheduling",
    "DoodbaSpec",
    "DoodbaPhase",
    "DoodbaStatus",
    "DoodbaResources",
    "Hook",
]

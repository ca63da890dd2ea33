from typing import Dict, List, Optional
from doodba.types.base import BaseModel


class FileStore(BaseModel):
    """Filestore storage."""

    access_modes: List[str]
    size: str
    storage_class_name: Optional[str]
    existing_claim: Optional[str]
    annotations: Dict[str, str]

from typing import Optional
from doodba.types.base import BaseModel
from doodba.types.models.key_selector import ConfigMapKeySelector, SecretKeySelector


class Database(BaseModel):
    """Database connection descriptor."""

    host: Optional[ConfigMapKeySelector]
    port: Optional[ConfigMapKeySelector]
    username: Optional[SecretKeySelector]
    password: Optional[SecretKeySelector]
    database: Optional[str]

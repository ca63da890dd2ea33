from typing import Dict, Optional
from doodba.types.base import BaseModel


class KeySelector(BaseModel):
    """Reference to one key of a ConfigMap or Secret."""

    name: str
    key: str
    optional: Optional[bool]

    def as_selector(self) -> Dict:
        selector = {"name": self.name, "key": self.key}
        if self.optional is not None:
            selector["optional"] = self.optional
        return selector


class ConfigMapKeySelector(KeySelector): ...


class SecretKeySelector(KeySelector): ...

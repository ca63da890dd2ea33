from .base import BaseResource
from .doodba import Doodba

__all__ = ["BaseResource", "Doodba"]

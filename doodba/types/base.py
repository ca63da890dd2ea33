from types import SimpleNamespace
from typing import Any, Dict, Optional
from marshmallow import EXCLUDE, INCLUDE, Schema, post_dump, post_load  # noqa: F401

JSON = Dict[str, Any]
MAX_REPR_LEN = 80


class BaseModel(SimpleNamespace):
    """BaseModel that all models should inherit from.

    Passed keyword arguments become instance attributes. Equality compares
    attributes, which lets callers detect whether a derived model changed.
    """

    def __repr__(self) -> str:
        repr_ = super().__repr__()
        if len(repr_) > MAX_REPR_LEN:
            return repr_[:MAX_REPR_LEN] + " ...)"
        return repr_

    def replace(self, **changes: Any) -> "BaseModel":
        """Return a copy with the given attributes changed."""
        data = dict(self.__dict__)
        data.update(changes)
        return self.__class__(**data)

    def as_dict(self) -> Dict[str, Any]:
        result = {}
        for key, value in self.__dict__.items():
            if isinstance(value, BaseModel):
                result[key] = value.as_dict()
            elif isinstance(value, list):
                result[key] = [
                    item.as_dict() if isinstance(item, BaseModel) else item
                    for item in value
                ]
            else:
                result[key] = value
        return result


class UnknownModel(BaseModel):
    """A convenience class that inherits from `BaseModel`."""

    def keys(self):
        return self.__dict__.keys()

    def values(self):
        return self.__dict__.values()

    def items(self):
        return self.__dict__.items()


class BaseSchema(Schema):
    """The default schema for all models."""

    __model__: Any = UnknownModel
    """Determine the object that is created when the load method is called."""

    class Meta:
        unknown = INCLUDE
        ordered = True

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> "__model__":
        """Build model for the given `__model__` class attribute.
        Args:
            data: The JSON dictionary to use to build the model.
            **kwargs: Unused but required to match signature of `Schema.make_object`
        Returns:
            An instance of the `__model__` class.
        """
        return self.__model__(**data)


class ManifestSchema(BaseSchema):
    """Schema whose dumped output is sent back to the API server.

    Unset optional fields are dropped instead of being serialized as null.
    """

    @post_dump
    def remove_none(self, data: JSON, **kwargs: Any) -> Optional[JSON]:
        return {k: v for k, v in data.items() if v is not None}

from types import SimpleNamespace
from typing import Any, Dict, Mapping
from marshmallow import EXCLUDE, Schema, post_load

JSON = Dict[str, Any]
MAX_REPR_LEN = 60


class BaseModel(SimpleNamespace):
    """Attribute access over a loaded section of a custom resource."""

    def __repr__(self) -> str:
        repr_ = super().__repr__()
        if len(repr_) > MAX_REPR_LEN:
            return repr_[:MAX_REPR_LEN] + " ...)"
        return repr_


class BaseSchema(Schema):
    """Loads one section (spec or status) of a custom resource into ``__model__``.

    Fields the operator does not model are dropped, so CRD additions never
    break loading.
    """

    __model__: Any = BaseModel

    class Meta:
        unknown = EXCLUDE
        ordered = True

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> "__model__":
        return self.__model__(**data)

    @classmethod
    def load_section(cls, body: Mapping, section: str):
        """Load ``body[section]``, treating a missing or null section as empty."""
        return cls().load(dict(body.get(section) or {}))

import copy
from typing import Any, Dict, List
from benedict import benedict
from sailtag.resources.base import BaseResource
from sailtag.types.models import IstioRevisionSpec
from sailtag.types.schemas import IstioRevisionSpecSchema


class IstioRevision(BaseResource):
    """IstioRevision resource model. Read only for the tag controller."""

    KIND = "IstioRevision"
    PLURAL = "istiorevisions"

    name: str
    spec: IstioRevisionSpec

    def __init__(self, name: str, spec: IstioRevisionSpec):
        self.name = name
        self.spec = spec

    @classmethod
    def from_body(cls, body: Dict) -> "IstioRevision":
        meta = body.get("metadata") or {}
        spec_model = IstioRevisionSpecSchema.load_section(body, "spec")
        return cls(name=meta.get("name"), spec=spec_model)

    @property
    def namespace(self) -> str:
        return self.spec.namespace

    @property
    def version(self) -> str:
        return self.spec.version

    def prepare_values(self) -> benedict:
        """Deep copy of the revision values, safe to modify."""
        return benedict(copy.deepcopy(self.spec.values or {}), keypath_separator=None)

    def get_value(self, keys: List[str], default: Any = None) -> Any:
        # values may carry dotted keys such as annotations, so use key lists
        return benedict(self.spec.values or {}, keypath_separator=None).get(keys, default)

import copy
import kopf
from typing import Dict, Optional
from sailtag.common.models.labels import Labels
from sailtag.resources.base import BaseResource
from sailtag.types.models import IstioRevisionTagSpec, TargetReference
from sailtag.types.schemas import IstioRevisionTagSpecSchema


class IstioRevisionTag(BaseResource):
    """IstioRevisionTag resource model."""

    KIND = "IstioRevisionTag"
    PLURAL = "istiorevisiontags"
    RELEASE_SUFFIX = "revisiontags"

    name: str
    uid: str
    generation: int
    spec: IstioRevisionTagSpec
    status: Dict
    _labels: Labels

    def __init__(
        self,
        name: str,
        uid: str,
        generation: int,
        spec: IstioRevisionTagSpec,
        labels: Dict[str, str] = None,
        status: Dict = None,
    ):
        self.name = name
        self.uid = uid
        self.generation = generation
        self.spec = spec
        self._labels = Labels(labels)
        self.status = status or {}

    @classmethod
    def from_body(cls, body: Dict) -> "IstioRevisionTag":
        """Build a tag from a raw object (kopf body or API response)."""
        meta = body.get("metadata") or {}
        spec_model = IstioRevisionTagSpecSchema.load_section(body, "spec")
        return cls(
            name=meta.get("name"),
            uid=meta.get("uid"),
            generation=meta.get("generation") or 0,
            spec=spec_model,
            labels=dict(meta.get("labels") or {}),
            status=copy.deepcopy(dict(body.get("status") or {})),
        )

    @property
    def labels(self) -> Labels:
        return self._labels

    @property
    def target_ref(self) -> TargetReference:
        return self.spec.target_ref

    @property
    def referenced_revision(self) -> Optional[str]:
        return self._labels.referenced_revision

    @property
    def istiod_namespace(self) -> str:
        return self.status.get("istiodNamespace") or ""

    @property
    def release_name(self) -> str:
        return f"{self.name}-{self.RELEASE_SUFFIX}"

    @property
    def api_version(self) -> str:
        return f"{self.GROUP}/{self.VERSION}"

    def prepare_owner_reference(self) -> Dict:
        """Controller owner reference for objects installed on behalf of this tag."""
        return kopf.build_owner_reference(
            {
                "apiVersion": self.api_version,
                "kind": self.KIND,
                "metadata": {"name": self.name, "uid": self.uid},
            },
            controller=True,
            block_owner_deletion=True,
        )

    def targets(self, kind: str, name: str) -> bool:
        return self.target_ref.kind == kind and self.target_ref.name == name

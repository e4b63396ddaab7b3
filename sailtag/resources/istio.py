from typing import Dict
from sailtag.resources.base import BaseResource
from sailtag.types.models import IstioStatus
from sailtag.types.schemas import IstioStatusSchema


class Istio(BaseResource):
    """Istio resource model."""

    KIND = "Istio"
    PLURAL = "istios"

    name: str
    status: IstioStatus

    def __init__(self, name: str, status: IstioStatus):
        self.name = name
        self.status = status

    @classmethod
    def from_body(cls, body: Dict) -> "Istio":
        meta = body.get("metadata") or {}
        status = IstioStatusSchema.load_section(body, "status")
        return cls(name=meta.get("name"), status=status)

    @property
    def active_revision_name(self) -> str:
        return self.status.active_revision_name or ""

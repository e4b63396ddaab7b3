from sailtag.types.base import BaseModel


class IstioStatus(BaseModel):
    active_revision_name: str

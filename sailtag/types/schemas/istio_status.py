from marshmallow import fields
from sailtag.types.base import BaseSchema
from sailtag.types.models.istio_status import IstioStatus


class IstioStatusSchema(BaseSchema):
    __model__ = IstioStatus

    active_revision_name = fields.Str(
        data_key="activeRevisionName", load_default="", allow_none=True
    )

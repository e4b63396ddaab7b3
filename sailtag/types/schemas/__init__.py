from .istiorevisiontag_spec import TargetReferenceSchema, IstioRevisionTagSpecSchema
from .istiorevision_spec import IstioRevisionSpecSchema
from .istio_status import IstioStatusSchema

__all__ = [
    "TargetReferenceSchema",
    "IstioRevisionTagSpecSchema",
    "IstioRevisionSpecSchema",
    "IstioStatusSchema",
]

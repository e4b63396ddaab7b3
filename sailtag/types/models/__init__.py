from .istiorevisiontag_spec import TargetReference, IstioRevisionTagSpec
from .istiorevision_spec import IstioRevisionSpec
from .istio_status import IstioStatus

__all__ = [
    "TargetReference",
    "IstioRevisionTagSpec",
    "IstioRevisionSpec",
    "IstioStatus",
]

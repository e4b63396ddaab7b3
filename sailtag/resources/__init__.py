from .istio import Istio
from .istiorevision import IstioRevision
from .istiorevisiontag import IstioRevisionTag
from .store import ClusterStore

__all__ = ["Istio", "IstioRevision", "IstioRevisionTag", "ClusterStore"]

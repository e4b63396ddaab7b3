from typing import Dict, List, Optional
from kubernetes_asyncio.client import (
    ApiClient,
    CoreV1Api,
    CustomObjectsApi,
    V1Namespace,
    V1Pod,
)
from sailtag.resources.base import BaseResource
from sailtag.resources.istio import Istio
from sailtag.resources.istiorevision import IstioRevision
from sailtag.resources.istiorevisiontag import IstioRevisionTag


class ClusterStore(BaseResource):
    """Read and patch access to the objects the tag controller works with.

    Lookups return None when the object does not exist; every other API
    failure propagates to the caller.
    """

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client
        self.custom_objects_api = CustomObjectsApi(api_client)
        self.core_v1_api = CoreV1Api(api_client)

    async def get_istio(self, name: str) -> Optional[Istio]:
        body = await self.get_cluster_custom_object(
            self.custom_objects_api, self.GROUP, self.VERSION, Istio.PLURAL, name
        )
        return Istio.from_body(body) if body else None

    async def get_revision(self, name: str) -> Optional[IstioRevision]:
        body = await self.get_cluster_custom_object(
            self.custom_objects_api,
            self.GROUP,
            self.VERSION,
            IstioRevision.PLURAL,
            name,
        )
        return IstioRevision.from_body(body) if body else None

    async def list_tags(self, label_selector: str = None) -> List[IstioRevisionTag]:
        result = await self.list_cluster_custom_objects(
            self.custom_objects_api,
            self.GROUP,
            self.VERSION,
            IstioRevisionTag.PLURAL,
            label_selector=label_selector,
        )
        return [IstioRevisionTag.from_body(item) for item in result.get("items", [])]

    async def list_namespaces(self, label_selector: str = None) -> List[V1Namespace]:
        result = await self.fetch_namespaces(self.core_v1_api, label_selector)
        return result.items or []

    async def list_pods(self, label_selector: str = None) -> List[V1Pod]:
        result = await self.fetch_pods(
            self.core_v1_api, label_selector
        )
        return result.items or []

    async def patch_tag_labels(self, name: str, labels: Dict[str, Optional[str]]) -> Dict:
        """Merge patch tag labels. A None value removes the label."""
        return await self.patch_cluster_custom_object(
            self.custom_objects_api,
            self.GROUP,
            self.VERSION,
            IstioRevisionTag.PLURAL,
            name,
            {"metadata": {"labels": labels}},
        )

    async def patch_tag_status(self, name: str, status: Dict) -> Dict:
        return await self.patch_cluster_custom_object_status(
            self.custom_objects_api,
            self.GROUP,
            self.VERSION,
            IstioRevisionTag.PLURAL,
            name,
            {"status": status},
        )

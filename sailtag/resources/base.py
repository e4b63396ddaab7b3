from typing import Dict, Optional
from kubernetes_asyncio.client import (
    ApiException,
    CoreV1Api,
    CustomObjectsApi,
    V1NamespaceList,
    V1PodList,
)
from sailtag.utils.errors import not_found_error


MERGE_PATCH = "application/merge-patch+json"


class BaseResource:
    """Base resource model."""

    GROUP = "sailoperator.io"
    VERSION = "v1alpha1"

    async def get_cluster_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        group: str,
        version: str,
        plural: str,
        name: str,
    ) -> Optional[Dict]:
        try:
            return await custom_objects_api.get_cluster_custom_object(
                group=group,
                version=version,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def list_cluster_custom_objects(
        self,
        custom_objects_api: CustomObjectsApi,
        group: str,
        version: str,
        plural: str,
        label_selector: str = None,
    ) -> Dict:
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return await custom_objects_api.list_cluster_custom_object(
            group=group,
            version=version,
            plural=plural,
            **kwargs,
        )

    async def patch_cluster_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        group: str,
        version: str,
        plural: str,
        name: str,
        patch: Dict,
    ) -> Dict:
        return await custom_objects_api.patch_cluster_custom_object(
            group=group,
            version=version,
            plural=plural,
            name=name,
            body=patch,
            _content_type=MERGE_PATCH,
        )

    async def patch_cluster_custom_object_status(
        self,
        custom_objects_api: CustomObjectsApi,
        group: str,
        version: str,
        plural: str,
        name: str,
        patch: Dict,
    ) -> Dict:
        return await custom_objects_api.patch_cluster_custom_object_status(
            group=group,
            version=version,
            plural=plural,
            name=name,
            body=patch,
            _content_type=MERGE_PATCH,
        )

    async def fetch_namespaces(
        self, core_v1_api: CoreV1Api, label_selector: str = None
    ) -> V1NamespaceList:
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return await core_v1_api.list_namespace(**kwargs)

    async def fetch_pods(
        self, core_v1_api: CoreV1Api, label_selector: str = None
    ) -> V1PodList:
        """List pods across all namespaces, optionally filtered by a label selector."""
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return await core_v1_api.list_pod_for_all_namespaces(**kwargs)

"""Helm release management for charts shipped with the operator.

``HelmChartManager`` drives the helm CLI through pyhelm3 and marks every
object a release renders as owned by the custom resource it was installed
for, so the garbage collector removes them with their owner.
"""

import logging
from typing import Any, Dict, Optional
from kubernetes_asyncio.client import ApiClient, ApiException
from kubernetes_asyncio.dynamic import DynamicClient
from pyhelm3 import Client as HelmClient, ReleaseRevisionStatus, errors as helm_errors
from sailtag.resources.base import MERGE_PATCH
from sailtag.utils.errors import not_found_error
from sailtag.utils.helpers import compute_hash

logger = logging.getLogger(__name__)

CONFIG_HASH_PREFIX = "sailoperator.io/config-hash="


class ChartManager:
    """Installs and removes helm releases."""

    async def upgrade_or_install(
        self,
        chart_path: str,
        values: Dict[str, Any],
        namespace: str,
        release_name: str,
        owner_reference: Dict[str, Any],
    ) -> Any:
        raise NotImplementedError()

    async def uninstall(self, release_name: str, namespace: str) -> bool:
        """Remove a release. Returns False when there was nothing to remove."""
        raise NotImplementedError()


class HelmChartManager(ChartManager):
    def __init__(
        self,
        api_client: ApiClient,
        executable: str = "helm",
        default_timeout: str = "5m",
        history_max_revisions: int = 10,
        helm_client: Optional[HelmClient] = None,
    ):
        self.api_client = api_client
        self.helm_client = helm_client or HelmClient(
            default_timeout=default_timeout,
            executable=executable,
            history_max_revisions=history_max_revisions,
        )
        self._dynamic_client: Optional[DynamicClient] = None

    def prepare_config_hash(
        self, chart_path: str, values: Dict[str, Any], owner_reference: Dict[str, Any]
    ) -> str:
        return compute_hash(
            {
                "chart": chart_path,
                "values": dict(values),
                "owner": dict(owner_reference),
            }
        )

    async def get_current_revision(self, release_name: str, namespace: str):
        try:
            return await self.helm_client.get_current_revision(
                release_name, namespace=namespace
            )
        except helm_errors.ReleaseNotFoundError:
            return None

    async def upgrade_or_install(
        self,
        chart_path: str,
        values: Dict[str, Any],
        namespace: str,
        release_name: str,
        owner_reference: Dict[str, Any],
    ):
        description = CONFIG_HASH_PREFIX + self.prepare_config_hash(
            chart_path, values, owner_reference
        )
        current = await self.get_current_revision(release_name, namespace)
        if current is not None:
            if current.status == ReleaseRevisionStatus.PENDING_INSTALL:
                # an interrupted first install blocks every later upgrade
                logger.info(
                    f"Release {namespace}/{release_name} is stuck in pending-install, uninstalling"
                )
                await self.uninstall(release_name, namespace)
                current = None
            elif (
                current.status == ReleaseRevisionStatus.DEPLOYED
                and current.description == description
            ):
                logger.debug(f"Release {namespace}/{release_name} is up to date")
                return current

        chart = await self.helm_client.get_chart(chart_path)
        revision = await self.helm_client.install_or_upgrade_release(
            release_name,
            chart,
            dict(values),
            namespace=namespace,
            create_namespace=False,
            description=description,
        )
        logger.info(
            f"Release {namespace}/{release_name} at revision {revision.revision}"
        )
        await self.adopt_resources(revision, owner_reference)
        return revision

    async def uninstall(self, release_name: str, namespace: str) -> bool:
        try:
            await self.helm_client.uninstall_release(release_name, namespace=namespace)
        except helm_errors.ReleaseNotFoundError:
            logger.debug(f"Release {namespace}/{release_name} not found")
            return False
        logger.info(f"Release {namespace}/{release_name} uninstalled")
        return True

    async def get_dynamic_client(self) -> DynamicClient:
        if self._dynamic_client is None:
            self._dynamic_client = await DynamicClient(self.api_client)
        return self._dynamic_client

    async def adopt_resources(self, revision, owner_reference: Dict[str, Any]) -> None:
        """Set the owner reference on every object rendered by the release."""
        dynamic_client = await self.get_dynamic_client()
        patch = {"metadata": {"ownerReferences": [owner_reference]}}
        for resource in await revision.resources():
            metadata = resource.get("metadata") or {}
            api = await dynamic_client.resources.get(
                api_version=resource["apiVersion"], kind=resource["kind"]
            )
            namespace = None
            if api.namespaced:
                namespace = metadata.get("namespace", revision.release.namespace)
            try:
                await dynamic_client.patch(
                    api,
                    body=patch,
                    name=metadata["name"],
                    namespace=namespace,
                    content_type=MERGE_PATCH,
                )
            except ApiException as ex:
                if not_found_error(ex):
                    continue
                raise

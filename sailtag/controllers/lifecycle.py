import os
import logging
from typing import Optional
from sailtag.controllers.errors import ReconcileError
from sailtag.helm.chart_manager import ChartManager
from sailtag.resources import IstioRevision, IstioRevisionTag

logger = logging.getLogger(__name__)

REVISION_TAGS_CHART = "revisiontags"


class ReleaseLifecycle:
    """Installs and removes the revisiontags release owned by a tag."""

    def __init__(self, chart_manager: ChartManager, resource_directory: str, sensor=None):
        self.chart_manager = chart_manager
        self.resource_directory = resource_directory
        self.sensor = sensor

    def prepare_chart_dir(self, revision: IstioRevision) -> str:
        return os.path.join(
            self.resource_directory, revision.version, "charts", REVISION_TAGS_CHART
        )

    async def install(self, tag: IstioRevisionTag, revision: IstioRevision) -> None:
        values = revision.prepare_values()
        values["revisionTags"] = [tag.name]
        chart_dir = self.prepare_chart_dir(revision)
        sensor_state = self._on_start(tag, revision.namespace, "install")
        try:
            await self.chart_manager.upgrade_or_install(
                chart_dir,
                values.dict(),
                revision.namespace,
                tag.release_name,
                tag.prepare_owner_reference(),
            )
        except Exception as e:
            self._on_complete(tag, revision.namespace, "install", sensor_state, False)
            raise ReconcileError(
                f"failed to install/update Helm chart {REVISION_TAGS_CHART!r}: {e}"
            ) from e
        self._on_complete(tag, revision.namespace, "install", sensor_state, True)

    async def uninstall(self, tag: IstioRevisionTag) -> Optional[bool]:
        """Remove the tag's release from the namespace recorded in its status.

        Returns None when the tag never recorded an istiod namespace, since
        nothing was installed for it.
        """
        namespace = tag.istiod_namespace
        if not namespace:
            logger.info(f"No release recorded for {tag.name}, nothing to uninstall")
            return None
        sensor_state = self._on_start(tag, namespace, "uninstall")
        try:
            removed = await self.chart_manager.uninstall(tag.release_name, namespace)
        except Exception as e:
            self._on_complete(tag, namespace, "uninstall", sensor_state, False)
            raise ReconcileError(
                f"failed to uninstall Helm chart {REVISION_TAGS_CHART!r}: {e}"
            ) from e
        self._on_complete(tag, namespace, "uninstall", sensor_state, True)
        return removed

    async def uninstall_previous(self, tag: IstioRevisionTag, revision: IstioRevision) -> Optional[bool]:
        """Remove the release left behind when the tag moved to another istiod namespace."""
        if not tag.istiod_namespace or tag.istiod_namespace == revision.namespace:
            return None
        logger.info(
            f"{tag.name} moved from {tag.istiod_namespace} to {revision.namespace}, "
            f"removing the previous release"
        )
        return await self.uninstall(tag)

    def _on_start(self, tag: IstioRevisionTag, namespace: str, operation: str):
        if self.sensor:
            return self.sensor.on_release_operation_start(
                tag.name, tag.release_name, namespace, operation
            )
        return None

    def _on_complete(self, tag, namespace, operation, state, success):
        if self.sensor:
            self.sensor.on_release_operation_complete(
                tag.name, tag.release_name, namespace, operation, state, success
            )

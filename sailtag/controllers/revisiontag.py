import copy
import time
import logging
from typing import Optional
from sailtag.common.models.labels import Labels
from sailtag.controllers.lifecycle import ReleaseLifecycle
from sailtag.controllers.resolver import resolve_revision, validate
from sailtag.controllers.status import CONDITION_IN_USE, determine_status
from sailtag.controllers.usage import UsageDetector
from sailtag.helm.chart_manager import ChartManager
from sailtag.resources import ClusterStore, IstioRevision, IstioRevisionTag
from sailtag.sensors import OperatorSensor
from sailtag.types.settings import Settings
from sailtag.utils.errors import ErrorList
from sailtag.utils.helpers import deep_compare_dict, find_condition


class RevisionTagReconciler:
    """Drives an IstioRevisionTag towards its desired state.

    A reconcile validates the tag, resolves its target revision and
    installs the release. Label and status updates are attempted regardless
    of the outcome, and every failure is reported together.
    """

    def __init__(
        self,
        store: ClusterStore,
        chart_manager: ChartManager,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: logging.Logger = None,
    ):
        self.store = store
        self.conf = conf or Settings()
        self.sensor = sensor
        self.logger = logger or logging.getLogger(__name__)
        self.lifecycle = ReleaseLifecycle(
            chart_manager, self.conf.resource_directory, sensor=sensor
        )
        self.detector = UsageDetector(store)

    def with_logger(self, logger: logging.Logger) -> "RevisionTagReconciler":
        """Copy sharing the same collaborators but logging through ``logger``."""
        clone = copy.copy(self)
        clone.logger = logger
        return clone

    async def reconcile(self, tag: IstioRevisionTag, trigger_source: str = "queue") -> None:
        sensor_state = None
        if self.sensor:
            sensor_state = self.sensor.on_reconcile_start(
                tag.name, tag.generation, trigger_source
            )
        start_time = time.time()

        revision = None
        reconcile_err = None
        try:
            await validate(self.store, tag)
            revision = await resolve_revision(self.store, tag.target_ref)
            await self.lifecycle.install(tag, revision)
            await self.lifecycle.uninstall_previous(tag, revision)
            self.logger.debug(f"{tag.name} bound to IstioRevision {revision.name}")
        except Exception as e:
            # revision stays set when only the install failed
            reconcile_err = e

        errors = ErrorList([reconcile_err])
        try:
            await self.update_labels(tag, revision)
        except Exception as e:
            errors.add(e)
        try:
            errors.add(await self.update_status(tag, revision, reconcile_err))
        except Exception as e:
            errors.add(e)

        err = errors.error()
        if self.sensor:
            self.sensor.on_reconcile_complete(
                tag.name, sensor_state, err is None, err
            )
        if err is not None:
            self.logger.warning(f"Reconciliation of {tag.name} failed: {err}")
            raise err
        self.logger.debug(
            f"Reconciled {tag.name} in {time.time() - start_time:.2f} seconds"
        )

    async def update_labels(self, tag: IstioRevisionTag, revision: Optional[IstioRevision]) -> None:
        """Point the back-reference label at the resolved revision, or drop it."""
        desired = revision.name if revision is not None else None
        if tag.referenced_revision == desired:
            return
        await self.store.patch_tag_labels(
            tag.name, {Labels.REFERENCED_REVISION_LABEL: desired}
        )
        if self.sensor:
            self.sensor.on_labels_update(tag.name)

    async def update_status(
        self,
        tag: IstioRevisionTag,
        revision: Optional[IstioRevision],
        reconcile_err: Optional[BaseException],
    ) -> Optional[BaseException]:
        """Patch the status when it changed. Returns the usage check error."""
        status, usage_err = await determine_status(
            tag, revision, reconcile_err, self.detector
        )
        if self.sensor:
            in_use = find_condition(status.get("conditions"), CONDITION_IN_USE)
            self.sensor.on_usage_check(tag.name, (in_use or {}).get("status", ""))
        changed = not deep_compare_dict(tag.status or {}, status)
        if changed:
            await self.store.patch_tag_status(tag.name, status)
        if self.sensor:
            self.sensor.on_status_update(tag.name, changed)
        return usage_err

    async def finalize(self, tag: IstioRevisionTag) -> None:
        """Remove everything installed for the tag before it is deleted."""
        removed = await self.lifecycle.uninstall(tag)
        if removed is False:
            self.logger.info(f"Release {tag.release_name} was already gone")

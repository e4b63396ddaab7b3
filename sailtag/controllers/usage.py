"""Decide whether any namespace or pod selects an IstioRevisionTag."""

import logging
from typing import Optional
from sailtag.common.models.labels import Labels
from sailtag.controllers.errors import UsageCheckFailedError
from sailtag.controllers.resolver import resolve_revision
from sailtag.resources import ClusterStore, IstioRevision, IstioRevisionTag

logger = logging.getLogger(__name__)

ENABLE_NAMESPACES_BY_DEFAULT = ["sidecarInjectorWebhook", "enableNamespacesByDefault"]


def namespaces_enabled_by_default(revision: IstioRevision) -> bool:
    """Whether the revision injects into every namespace without a label.

    This is the one place that policy is read; any check that depends on
    default injection goes through here.
    """
    value = revision.get_value(ENABLE_NAMESPACES_BY_DEFAULT, False)
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def _labels_of(obj) -> Labels:
    metadata = getattr(obj, "metadata", None)
    return Labels(getattr(metadata, "labels", None) or {})


class UsageDetector:
    """Checks namespaces first, then pods, then the default injection policy."""

    def __init__(self, store: ClusterStore):
        self.store = store

    async def is_referenced(
        self, tag: IstioRevisionTag, revision: Optional[IstioRevision] = None
    ) -> bool:
        """True if at least one namespace or pod would be injected by the tag.

        Raises:
            UsageCheckFailedError: when namespaces or pods cannot be listed,
                or the revision of the default tag cannot be resolved.
        """
        try:
            namespaces = await self.store.list_namespaces()
        except Exception as e:
            raise UsageCheckFailedError(f"failed to list namespaces: {e}") from e
        for ns in namespaces:
            if _labels_of(ns).namespace_revision() == tag.name:
                logger.debug(f"{tag.name} referenced by namespace {ns.metadata.name}")
                return True

        try:
            pods = await self.store.list_pods()
        except Exception as e:
            raise UsageCheckFailedError(f"failed to list pods: {e}") from e
        for pod in pods:
            if _labels_of(pod).pod_revision() == tag.name:
                logger.debug(
                    f"{tag.name} referenced by pod "
                    f"{pod.metadata.namespace}/{pod.metadata.name}"
                )
                return True

        if tag.name == Labels.DEFAULT_REVISION:
            if revision is None:
                try:
                    revision = await resolve_revision(self.store, tag.target_ref)
                except Exception as e:
                    raise UsageCheckFailedError(str(e)) from e
            if namespaces_enabled_by_default(revision):
                return True

        return False

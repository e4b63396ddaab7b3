"""Map changes of watched objects to the IstioRevisionTags they affect."""

from typing import Callable, Dict, List, Mapping, Optional, Tuple
from sailtag.common.models.labels import Labels
from sailtag.resources import ClusterStore, Istio, IstioRevision, IstioRevisionTag
from sailtag.utils.helpers import compute_hash

HPA_KIND = "HorizontalPodAutoscaler"


def map_namespace(labels: Optional[Mapping[str, str]]) -> List[str]:
    rev = Labels(dict(labels or {})).namespace_revision()
    return [rev] if rev else []


def map_pod(labels: Optional[Mapping[str, str]]) -> List[str]:
    rev = Labels(dict(labels or {})).pod_revision()
    return [rev] if rev else []


def _unique(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


async def map_operator_resource(store: ClusterStore, kind: str, body: Mapping) -> List[str]:
    """Tags to reconcile after an Istio or IstioRevision changed.

    Tags are found by their back-reference label. For an Istio, tags that
    target it are added too, since they still carry the label of the
    revision that was active before the change.
    """
    meta = body.get("metadata") or {}
    if kind == IstioRevision.KIND:
        revision_name = meta.get("name")
    elif kind == Istio.KIND:
        revision_name = Istio.from_body(body).active_revision_name
    else:
        return []

    names = []
    if revision_name:
        tags = await store.list_tags(
            label_selector=Labels.referenced_revision_selector(revision_name)
        )
        names.extend(tag.name for tag in tags)
    if kind == Istio.KIND:
        tags = await store.list_tags()
        names.extend(tag.name for tag in tags if tag.targets(Istio.KIND, meta.get("name")))
    return _unique(names)


def map_owned_resource(body: Mapping) -> List[str]:
    """Names of IstioRevisionTags controlling the object."""
    meta = body.get("metadata") or {}
    return _unique(
        [
            ref.get("name")
            for ref in meta.get("ownerReferences") or []
            if ref.get("kind") == IstioRevisionTag.KIND
            and ref.get("apiVersion", "").startswith(IstioRevisionTag.GROUP + "/")
            and ref.get("controller")
        ]
    )


def prepare_watch_fields(body: Mapping) -> Dict:
    """Fields whose change makes an update worth reconciling.

    Status is excluded. HorizontalPodAutoscalers do not bump their generation
    on spec changes, so their spec is compared instead.
    """
    meta = body.get("metadata") or {}
    fields = {
        "labels": dict(meta.get("labels") or {}),
        "annotations": dict(meta.get("annotations") or {}),
        "ownerReferences": [dict(ref) for ref in meta.get("ownerReferences") or []],
        "finalizers": list(meta.get("finalizers") or []),
    }
    if body.get("kind") == HPA_KIND:
        fields["spec"] = dict(body.get("spec") or {})
    else:
        fields["generation"] = meta.get("generation")
    return fields


def compute_watch_hash(body: Mapping) -> str:
    return compute_hash(prepare_watch_fields(body))


def watch_snapshot(body: Mapping) -> Dict:
    """Copy of only the parts of ``body`` that ``prepare_watch_fields`` reads."""
    fields = prepare_watch_fields(body)
    snapshot = {
        "kind": body.get("kind"),
        "metadata": {k: v for k, v in fields.items() if k != "spec"},
    }
    if "spec" in fields:
        snapshot["spec"] = fields["spec"]
    return snapshot


def ignore_status_change(old: Optional[Mapping], new: Mapping) -> bool:
    """True if an update from ``old`` to ``new`` should be processed."""
    if old is None:
        return True
    return compute_watch_hash(old) != compute_watch_hash(new)


class StatusChangeFilter:
    """Maps watch events of a label carrier to the tags they affect.

    kopf event handlers receive only the new object, so for each uid a
    snapshot of the watch fields and the tags mapped from its labels are
    kept. An update affects both the tags its old labels selected and the
    tags its new labels select; status-only updates affect none.
    """

    def __init__(self, mapper: Callable[[Optional[Mapping[str, str]]], List[str]]):
        self.mapper = mapper
        self._last_seen: Dict[str, Tuple[Dict, List[str]]] = {}

    def affected_tags(self, event_type: Optional[str], body: Mapping) -> List[str]:
        meta = body.get("metadata") or {}
        uid = meta.get("uid")
        names = self.mapper(meta.get("labels"))
        if event_type == "DELETED":
            _, previous_names = self._last_seen.pop(uid, (None, []))
            return _unique(previous_names + names)

        previous = self._last_seen.get(uid)
        self._last_seen[uid] = (watch_snapshot(body), names)
        if previous is None:
            return names
        old, previous_names = previous
        if event_type == "MODIFIED" and not ignore_status_change(old, body):
            return []
        return _unique(previous_names + names)

    def __len__(self) -> int:
        return len(self._last_seen)

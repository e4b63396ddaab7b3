"""Watches on objects that influence IstioRevisionTags.

Each handler maps the event to the affected tag names and requests their
reconciliation. Status-only updates of namespaces and pods are skipped; a
relabelled namespace or pod also enqueues the tags its old labels selected.
"""

import kopf
from logging import Logger
from typing import Iterable
from sailtag.controllers.mapping import (
    StatusChangeFilter,
    map_namespace,
    map_owned_resource,
    map_operator_resource,
    map_pod,
)
from sailtag.handlers.istiorevisiontag import (
    get_sensor,
    known_tags,
    request_reconciliation,
)
from sailtag.resources import Istio, IstioRevision, IstioRevisionTag

namespace_filter = StatusChangeFilter(map_namespace)
pod_filter = StatusChangeFilter(map_pod)


async def enqueue_all(names: Iterable[str], watched_kind: str, memo: kopf.Memo, logger: Logger):
    names = [name for name in names if name in known_tags]
    sensor = get_sensor(memo)
    for name in names:
        await request_reconciliation(name, f"watch:{watched_kind}", sensor)
    if names:
        logger.debug(f"{watched_kind} event requested reconciliation of {names}")
        if sensor:
            sensor.on_event_mapped(watched_kind, len(names))


@kopf.on.event("", "v1", "namespaces")
async def on_namespace_event(type, body, memo: kopf.Memo, logger: Logger, **kwargs):
    await enqueue_all(namespace_filter.affected_tags(type, body), "Namespace", memo, logger)


@kopf.on.event("", "v1", "pods")
async def on_pod_event(type, body, memo: kopf.Memo, logger: Logger, **kwargs):
    await enqueue_all(pod_filter.affected_tags(type, body), "Pod", memo, logger)


@kopf.on.event(IstioRevisionTag.GROUP, IstioRevisionTag.VERSION, Istio.PLURAL)
async def on_istio_event(body, memo: kopf.Memo, logger: Logger, **kwargs):
    names = await map_operator_resource(memo.store, Istio.KIND, body)
    await enqueue_all(names, Istio.KIND, memo, logger)


@kopf.on.event(IstioRevisionTag.GROUP, IstioRevisionTag.VERSION, IstioRevision.PLURAL)
async def on_istio_revision_event(body, memo: kopf.Memo, logger: Logger, **kwargs):
    names = await map_operator_resource(memo.store, IstioRevision.KIND, body)
    await enqueue_all(names, IstioRevision.KIND, memo, logger)


@kopf.on.event("admissionregistration.k8s.io", "v1", "mutatingwebhookconfigurations")
async def on_webhook_configuration_event(body, memo: kopf.Memo, logger: Logger, **kwargs):
    await enqueue_all(map_owned_resource(body), "MutatingWebhookConfiguration", memo, logger)

"""Unit tests for the kopf handlers: request queue, timer and finalizer."""

import kopf
import logging
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
import sailtag.handlers.istiorevisiontag as handlers
import sailtag.handlers.watches as watches
from sailtag.controllers.errors import NameAlreadyExistsError, ReconcileError
from sailtag.types.settings import Settings
from conftest import make_tag_body

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def reset_state():
    handlers.known_tags.clear()
    handlers.names_in_queue.clear()
    handlers.reconciliation_queue.clear()
    handlers.reconciliation_locks.clear()
    handlers.retry_backoff.clear()
    watches.namespace_filter._last_seen.clear()
    watches.pod_filter._last_seen.clear()
    yield


@pytest.fixture
def reconciler():
    r = Mock()
    r.with_logger = Mock(return_value=r)
    r.reconcile = AsyncMock()
    r.finalize = AsyncMock()
    return r


@pytest.fixture
def memo(reconciler, store):
    return SimpleNamespace(
        reconciler=reconciler,
        store=store,
        conf=Settings(reconcile_retry_delay_seconds=30.0),
        sensor=Mock(),
    )


async def run_timer(name, memo):
    await handlers.process_reconciliation_requests(
        name=name, body=make_tag_body(name=name), memo=memo, logger=logger, stopped=False
    )


class TestRequestReconciliation:
    @pytest.mark.asyncio
    async def test_requests_collapse(self):
        await handlers.request_reconciliation("canary", "event")
        await handlers.request_reconciliation("canary", "event")
        assert handlers.reconciliation_queue["canary"].qsize() == 1

    @pytest.mark.asyncio
    async def test_sensor_sees_queue_depth(self):
        sensor = Mock()
        await handlers.request_reconciliation("canary", "event", sensor)
        sensor.on_reconcile_queued.assert_called_once_with("canary", 1)

    @pytest.mark.asyncio
    async def test_on_change(self, memo):
        handlers.retry_backoff["canary"] = (3, float("inf"))
        await handlers.on_change(name="canary", memo=memo, logger=logger)
        assert "canary" in handlers.known_tags
        assert "canary" not in handlers.retry_backoff
        trigger_source, _ = handlers.reconciliation_queue["canary"].get_nowait()
        assert trigger_source == "change"


class TestProcessReconciliationRequests:
    """Tests for the per-tag timer draining the queue."""

    @pytest.mark.asyncio
    async def test_empty_queue(self, memo, reconciler):
        await run_timer("canary", memo)
        reconciler.reconcile.assert_not_awaited()
        assert "canary" in handlers.known_tags

    @pytest.mark.asyncio
    async def test_reconciles_queued_request(self, memo, reconciler):
        await handlers.request_reconciliation("canary", "change")
        await run_timer("canary", memo)

        reconciler.reconcile.assert_awaited_once()
        tag = reconciler.reconcile.call_args[0][0]
        assert tag.name == "canary"
        assert reconciler.reconcile.call_args[1]["trigger_source"] == "change"
        assert "canary" not in handlers.names_in_queue
        assert handlers.reconciliation_queue["canary"].empty()

    @pytest.mark.asyncio
    async def test_request_during_reconcile_queues_follow_up(self, memo, reconciler):
        async def reconcile(tag, trigger_source):
            await handlers.request_reconciliation(tag.name, "event")

        reconciler.reconcile.side_effect = reconcile
        await handlers.request_reconciliation("canary", "change")
        await run_timer("canary", memo)

        assert handlers.reconciliation_queue["canary"].qsize() == 1

    @pytest.mark.asyncio
    async def test_transient_failure_retried_with_backoff(self, memo, reconciler):
        reconciler.reconcile.side_effect = ReconcileError("helm failed")
        await handlers.request_reconciliation("canary", "change")
        await run_timer("canary", memo)

        assert handlers.retry_backoff["canary"][0] == 1
        assert handlers.retry_pending("canary")
        trigger_source, _ = handlers.reconciliation_queue["canary"].get_nowait()
        assert trigger_source == "retry"

    @pytest.mark.asyncio
    async def test_pending_retry_waits(self, memo, reconciler):
        reconciler.reconcile.side_effect = ReconcileError("helm failed")
        await handlers.request_reconciliation("canary", "change")
        await run_timer("canary", memo)
        await run_timer("canary", memo)

        assert reconciler.reconcile.await_count == 1
        assert handlers.reconciliation_queue["canary"].qsize() == 1

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self, memo, reconciler):
        reconciler.reconcile.side_effect = NameAlreadyExistsError("taken")
        await handlers.request_reconciliation("canary", "change")
        await run_timer("canary", memo)

        assert "canary" not in handlers.retry_backoff
        assert handlers.reconciliation_queue["canary"].empty()

    @pytest.mark.asyncio
    async def test_success_clears_backoff(self, memo, reconciler):
        handlers.retry_backoff["canary"] = (2, 0.0)
        await handlers.request_reconciliation("canary", "retry")
        await run_timer("canary", memo)
        assert "canary" not in handlers.retry_backoff

    @pytest.mark.asyncio
    async def test_stopped(self, memo, reconciler):
        await handlers.request_reconciliation("canary", "change")
        await handlers.process_reconciliation_requests(
            name="canary", body=make_tag_body(), memo=memo, logger=logger, stopped=True
        )
        reconciler.reconcile.assert_not_awaited()


class TestOnDelete:
    @pytest.mark.asyncio
    async def test_finalizes_once_and_forgets(self, memo, reconciler):
        handlers.known_tags.add("canary")
        await handlers.request_reconciliation("canary", "change")

        await handlers.on_delete(name="canary", body=make_tag_body(), memo=memo, logger=logger)

        reconciler.finalize.assert_awaited_once()
        assert reconciler.finalize.call_args[0][0].release_name == "canary-revisiontags"
        assert "canary" not in handlers.known_tags
        assert "canary" not in handlers.names_in_queue
        assert "canary" not in handlers.reconciliation_queue

    @pytest.mark.asyncio
    async def test_failure_keeps_finalizer(self, memo, reconciler):
        handlers.known_tags.add("canary")
        reconciler.finalize.side_effect = ReconcileError("failed to uninstall")

        with pytest.raises(kopf.TemporaryError):
            await handlers.on_delete(name="canary", body=make_tag_body(), memo=memo, logger=logger)

        assert "canary" in handlers.known_tags


class TestWatches:
    @pytest.mark.asyncio
    async def test_namespace_event_for_known_tag(self, memo):
        handlers.known_tags.add("canary")
        body = {"metadata": {"uid": "ns-apps", "labels": {"istio.io/rev": "canary"}}}
        await watches.on_namespace_event(
            type="ADDED", body=body, labels={"istio.io/rev": "canary"}, memo=memo, logger=logger
        )
        assert "canary" in handlers.names_in_queue
        memo.sensor.on_event_mapped.assert_called_once_with("Namespace", 1)

    @pytest.mark.asyncio
    async def test_unknown_names_ignored(self, memo):
        body = {"metadata": {"uid": "ns-apps", "labels": {"istio.io/rev": "1-24-0"}}}
        await watches.on_namespace_event(
            type="ADDED", body=body, labels={"istio.io/rev": "1-24-0"}, memo=memo, logger=logger
        )
        assert not handlers.names_in_queue
        assert "1-24-0" not in handlers.reconciliation_queue

    @pytest.mark.asyncio
    async def test_pod_status_update_ignored(self, memo):
        handlers.known_tags.add("canary")
        labels = {"istio.io/rev": "canary"}
        body = {"metadata": {"uid": "pod-web", "labels": labels}, "status": {"phase": "Pending"}}
        await watches.on_pod_event(type="ADDED", body=body, labels=labels, memo=memo, logger=logger)
        handlers.names_in_queue.clear()
        handlers.reconciliation_queue.clear()

        body = {"metadata": {"uid": "pod-web", "labels": labels}, "status": {"phase": "Running"}}
        await watches.on_pod_event(type="MODIFIED", body=body, labels=labels, memo=memo, logger=logger)
        assert not handlers.names_in_queue

    @pytest.mark.asyncio
    async def test_namespace_relabel_enqueues_old_and_new_tag(self, memo):
        handlers.known_tags.update({"canary", "stable"})
        body = {"metadata": {"uid": "ns-apps", "labels": {"istio.io/rev": "canary"}}}
        await watches.on_namespace_event(type="ADDED", body=body, memo=memo, logger=logger)
        handlers.names_in_queue.clear()
        handlers.reconciliation_queue.clear()

        body = {"metadata": {"uid": "ns-apps", "labels": {"istio.io/rev": "stable"}}}
        await watches.on_namespace_event(type="MODIFIED", body=body, memo=memo, logger=logger)
        assert handlers.names_in_queue == {"canary", "stable"}

    @pytest.mark.asyncio
    async def test_injection_label_removed_enqueues_default(self, memo):
        handlers.known_tags.add("default")
        body = {"metadata": {"uid": "ns-web", "labels": {"istio-injection": "enabled"}}}
        await watches.on_namespace_event(type="ADDED", body=body, memo=memo, logger=logger)
        handlers.names_in_queue.clear()
        handlers.reconciliation_queue.clear()

        body = {"metadata": {"uid": "ns-web", "labels": {}}}
        await watches.on_namespace_event(type="MODIFIED", body=body, memo=memo, logger=logger)
        assert "default" in handlers.names_in_queue

    @pytest.mark.asyncio
    async def test_istio_revision_event(self, memo, store):
        handlers.known_tags.add("canary")
        store.add_tag(name="canary", labels={"sailoperator.io/referenced-revision": "rev-a"})
        await watches.on_istio_revision_event(
            body={"metadata": {"name": "rev-a"}}, memo=memo, logger=logger
        )
        trigger_source, _ = handlers.reconciliation_queue["canary"].get_nowait()
        assert trigger_source == "watch:IstioRevision"

    @pytest.mark.asyncio
    async def test_owned_webhook_event(self, memo):
        handlers.known_tags.add("canary")
        body = {
            "metadata": {
                "name": "istio-revision-tag-canary",
                "ownerReferences": [
                    {
                        "apiVersion": "sailoperator.io/v1alpha1",
                        "kind": "IstioRevisionTag",
                        "name": "canary",
                        "uid": "uid-canary",
                        "controller": True,
                    }
                ],
            }
        }
        await watches.on_webhook_configuration_event(body=body, memo=memo, logger=logger)
        assert "canary" in handlers.names_in_queue

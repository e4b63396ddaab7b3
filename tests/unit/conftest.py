"""Shared fixtures: an in-memory cluster store and a recording chart manager."""

import copy
import pytest
from typing import Dict, List, Optional
from kubernetes_asyncio.client import V1Namespace, V1ObjectMeta, V1Pod
from sailtag.helm.chart_manager import ChartManager
from sailtag.resources import Istio, IstioRevision, IstioRevisionTag
from sailtag.types.settings import Settings


def make_tag_body(
    name="canary",
    kind="IstioRevision",
    target="rev-a",
    labels=None,
    status=None,
    generation=1,
    uid=None,
):
    spec = {"targetRef": {"kind": kind, "name": target}} if kind is not None else {}
    return {
        "apiVersion": "sailoperator.io/v1alpha1",
        "kind": "IstioRevisionTag",
        "metadata": {
            "name": name,
            "uid": uid or f"uid-{name}",
            "generation": generation,
            "labels": dict(labels or {}),
        },
        "spec": spec,
        "status": copy.deepcopy(status) if status else {},
    }


def make_revision_body(name="rev-a", namespace="istio-system", version="v1.24.0", values=None):
    return {
        "apiVersion": "sailoperator.io/v1alpha1",
        "kind": "IstioRevision",
        "metadata": {"name": name},
        "spec": {
            "version": version,
            "namespace": namespace,
            "values": copy.deepcopy(values) if values is not None else {"global": {"istioNamespace": namespace}},
        },
    }


def make_istio_body(name="default", active="rev-a"):
    return {
        "apiVersion": "sailoperator.io/v1alpha1",
        "kind": "Istio",
        "metadata": {"name": name},
        "status": {"activeRevisionName": active} if active is not None else {},
    }


def make_namespace(name, labels=None) -> V1Namespace:
    return V1Namespace(metadata=V1ObjectMeta(name=name, labels=labels))


def make_pod(name, namespace="apps", labels=None) -> V1Pod:
    return V1Pod(metadata=V1ObjectMeta(name=name, namespace=namespace, labels=labels))


class FakeClusterStore:
    """In-memory stand in for ClusterStore."""

    def __init__(self):
        self.istios: Dict[str, Dict] = {}
        self.revisions: Dict[str, Dict] = {}
        self.tags: Dict[str, Dict] = {}
        self.namespaces: List[V1Namespace] = []
        self.pods: List[V1Pod] = []
        self.label_patches: List = []
        self.status_patches: List = []
        self.failures: Dict[str, Exception] = {}

    def _maybe_fail(self, operation: str):
        if operation in self.failures:
            raise self.failures[operation]

    def add_revision(self, **kwargs) -> Dict:
        body = make_revision_body(**kwargs)
        self.revisions[body["metadata"]["name"]] = body
        return body

    def add_istio(self, **kwargs) -> Dict:
        body = make_istio_body(**kwargs)
        self.istios[body["metadata"]["name"]] = body
        return body

    def add_tag(self, **kwargs) -> Dict:
        body = make_tag_body(**kwargs)
        self.tags[body["metadata"]["name"]] = body
        return body

    def tag(self, name) -> IstioRevisionTag:
        return IstioRevisionTag.from_body(self.tags[name])

    async def get_istio(self, name: str) -> Optional[Istio]:
        self._maybe_fail("get_istio")
        body = self.istios.get(name)
        return Istio.from_body(body) if body else None

    async def get_revision(self, name: str) -> Optional[IstioRevision]:
        self._maybe_fail("get_revision")
        body = self.revisions.get(name)
        return IstioRevision.from_body(body) if body else None

    async def list_tags(self, label_selector: str = None) -> List[IstioRevisionTag]:
        self._maybe_fail("list_tags")
        wanted = {}
        if label_selector:
            for term in label_selector.split(","):
                key, value = term.split("=", 1)
                wanted[key] = value
        result = []
        for body in self.tags.values():
            labels = body["metadata"].get("labels") or {}
            if all(labels.get(k) == v for k, v in wanted.items()):
                result.append(IstioRevisionTag.from_body(body))
        return result

    async def list_namespaces(self, label_selector: str = None) -> List[V1Namespace]:
        self._maybe_fail("list_namespaces")
        return list(self.namespaces)

    async def list_pods(self, label_selector: str = None) -> List[V1Pod]:
        self._maybe_fail("list_pods")
        return list(self.pods)

    async def patch_tag_labels(self, name: str, labels: Dict[str, Optional[str]]) -> Dict:
        self._maybe_fail("patch_tag_labels")
        self.label_patches.append((name, dict(labels)))
        current = self.tags[name]["metadata"].setdefault("labels", {})
        for key, value in labels.items():
            if value is None:
                current.pop(key, None)
            else:
                current[key] = value
        return self.tags[name]

    async def patch_tag_status(self, name: str, status: Dict) -> Dict:
        self._maybe_fail("patch_tag_status")
        self.status_patches.append((name, copy.deepcopy(status)))
        self.tags[name]["status"] = copy.deepcopy(status)
        return self.tags[name]


class FakeChartManager(ChartManager):
    """Records helm operations; releases are keyed by (namespace, name)."""

    def __init__(self):
        self.releases: Dict = {}
        self.install_calls: List = []
        self.uninstall_calls: List = []
        self.install_error: Optional[Exception] = None
        self.uninstall_error: Optional[Exception] = None

    async def upgrade_or_install(self, chart_path, values, namespace, release_name, owner_reference):
        self.install_calls.append((chart_path, copy.deepcopy(values), namespace, release_name, owner_reference))
        if self.install_error:
            raise self.install_error
        self.releases[(namespace, release_name)] = {
            "chart": chart_path,
            "values": copy.deepcopy(values),
            "owner": owner_reference,
        }
        return self.releases[(namespace, release_name)]

    async def uninstall(self, release_name, namespace) -> bool:
        self.uninstall_calls.append((release_name, namespace))
        if self.uninstall_error:
            raise self.uninstall_error
        return self.releases.pop((namespace, release_name), None) is not None


@pytest.fixture
def store():
    return FakeClusterStore()


@pytest.fixture
def chart_manager():
    return FakeChartManager()


@pytest.fixture
def conf():
    return Settings(resource_directory="/resources", reconcile_retry_delay_seconds=1.0)

from typing import Dict, Optional


class ResourceLabels:
    SAIL_DOMAIN: str = "sailoperator.io/"

    REFERENCED_REVISION_LABEL = SAIL_DOMAIN + "referenced-revision"


class Labels(ResourceLabels):
    ISTIO_INJECTION_LABEL = "istio-injection"

    ISTIO_INJECTION_ENABLED = "enabled"

    ISTIO_REV_LABEL = "istio.io/rev"

    ISTIO_SIDECAR_INJECT_LABEL = "sidecar.istio.io/inject"

    DEFAULT_REVISION = "default"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = dict(labels) if labels else dict()

    def as_str(self):
        """Return labels as comma separated string."""
        return ",".join([f"{k}={v}" for k, v in self._labels.items()])

    def include(self, label: str, value: str) -> "Labels":
        self._labels[label] = value
        return self

    def include_referenced_revision(self, revision: str) -> "Labels":
        return self.include(self.REFERENCED_REVISION_LABEL, revision)

    @property
    def referenced_revision(self) -> Optional[str]:
        return self._labels.get(self.REFERENCED_REVISION_LABEL)

    @property
    def injection_enabled(self) -> bool:
        return self._labels.get(self.ISTIO_INJECTION_LABEL) == self.ISTIO_INJECTION_ENABLED

    def namespace_revision(self) -> str:
        """Revision a namespace with these labels selects, or empty string.

        ``istio-injection=enabled`` always selects the default revision and
        takes precedence over ``istio.io/rev``.
        """
        if self.injection_enabled:
            return self.DEFAULT_REVISION
        return self._labels.get(self.ISTIO_REV_LABEL, "")

    def pod_revision(self) -> str:
        """Revision a pod with these labels selects, or empty string.

        A pod labelled ``sidecar.istio.io/inject=false`` opts out of any
        ``istio.io/rev`` label it carries.
        """
        if self.injection_enabled:
            return self.DEFAULT_REVISION
        rev = self._labels.get(self.ISTIO_REV_LABEL, "")
        if rev and self._labels.get(self.ISTIO_SIDECAR_INJECT_LABEL) != "false":
            return rev
        return ""

    @classmethod
    def referenced_revision_selector(cls, revision: str) -> str:
        return Labels().include_referenced_revision(revision).as_str()

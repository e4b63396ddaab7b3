"""Resolve an IstioRevisionTag's targetRef to the IstioRevision it binds to."""

from sailtag.controllers.errors import (
    NameAlreadyExistsError,
    NoActiveRevisionError,
    ReferenceNotFoundError,
    RevisionNotFoundError,
    UnknownKindError,
    ValidationError,
)
from sailtag.resources import ClusterStore, Istio, IstioRevision, IstioRevisionTag
from sailtag.types.models import TargetReference


async def resolve_revision(store: ClusterStore, target_ref: TargetReference) -> IstioRevision:
    """Return the IstioRevision the reference currently points at.

    An ``IstioRevision`` target is looked up by name. An ``Istio`` target is
    followed through its ``status.activeRevisionName``.
    """
    if target_ref.kind == IstioRevision.KIND:
        revision_name = target_ref.name
    elif target_ref.kind == Istio.KIND:
        istio = await store.get_istio(target_ref.name)
        if istio is None:
            raise ReferenceNotFoundError(
                f"referenced Istio {target_ref.name!r} does not exist"
            )
        if not istio.active_revision_name:
            raise NoActiveRevisionError("referenced Istio has no active revision")
        revision_name = istio.active_revision_name
    else:
        raise UnknownKindError(f"unknown targetRef.kind {target_ref.kind!r}")

    revision = await store.get_revision(revision_name)
    if revision is None:
        raise RevisionNotFoundError(
            f"IstioRevision {revision_name!r} does not exist"
        )
    return revision


async def validate(store: ClusterStore, tag: IstioRevisionTag) -> None:
    """Reject tags whose reference is unset, dangling, or whose name is taken."""
    target_ref = tag.target_ref
    if not target_ref.kind or not target_ref.name:
        raise ReferenceNotFoundError("spec.targetRef not set")

    # anything but "not found" counts as taken
    try:
        conflicting = await store.get_revision(tag.name)
    except Exception as e:
        raise NameAlreadyExistsError("there is an IstioRevision with this name") from e
    if conflicting is not None:
        raise NameAlreadyExistsError("there is an IstioRevision with this name")

    if target_ref.kind == Istio.KIND:
        try:
            found = await store.get_istio(target_ref.name)
        except Exception as e:
            raise ValidationError(f"failed to get referenced Istio: {e}") from e
        if found is None:
            raise ReferenceNotFoundError("referenced Istio resource does not exist")
    elif target_ref.kind == IstioRevision.KIND:
        try:
            found = await store.get_revision(target_ref.name)
        except Exception as e:
            raise ValidationError(f"failed to get referenced IstioRevision: {e}") from e
        if found is None:
            raise ReferenceNotFoundError(
                "referenced IstioRevision resource does not exist"
            )

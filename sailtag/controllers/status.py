"""Status of an IstioRevisionTag.

Two conditions are tracked. ``Reconciled`` reports whether the tag could be
validated, resolved and installed. ``InUse`` reports whether any namespace
or pod selects the tag. ``state`` summarizes both.
"""

import copy
from typing import Dict, Optional, Tuple
from sailtag.controllers.errors import (
    NameAlreadyExistsError,
    ReferenceNotFoundError,
    REASON_NAME_ALREADY_EXISTS,
    REASON_RECONCILE_ERROR,
    REASON_REFERENCE_NOT_FOUND,
    REASON_USAGE_CHECK_FAILED,
)
from sailtag.controllers.usage import UsageDetector
from sailtag.resources import IstioRevision, IstioRevisionTag
from sailtag.utils.errors import MultipleErrors
from sailtag.utils.helpers import find_condition, upsert_condition

CONDITION_RECONCILED = "Reconciled"
CONDITION_IN_USE = "InUse"

STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

REASON_REFERENCED_BY_WORKLOADS = "ReferencedByWorkloads"
REASON_NOT_REFERENCED = "NotReferenced"

STATE_HEALTHY = "Healthy"


def _find_classified(err: BaseException, cls) -> Optional[BaseException]:
    if isinstance(err, MultipleErrors):
        for e in err.errors:
            if isinstance(e, cls):
                return e
        return None
    return err if isinstance(err, cls) else None


def determine_reconciled_condition(err: Optional[BaseException]) -> Dict:
    if err is None:
        return {"type": CONDITION_RECONCILED, "status": STATUS_TRUE}

    name_error = _find_classified(err, NameAlreadyExistsError)
    if name_error is not None:
        return {
            "type": CONDITION_RECONCILED,
            "status": STATUS_FALSE,
            "reason": REASON_NAME_ALREADY_EXISTS,
            "message": str(name_error),
        }
    ref_error = _find_classified(err, ReferenceNotFoundError)
    if ref_error is not None:
        return {
            "type": CONDITION_RECONCILED,
            "status": STATUS_FALSE,
            "reason": REASON_REFERENCE_NOT_FOUND,
            "message": str(ref_error),
        }
    return {
        "type": CONDITION_RECONCILED,
        "status": STATUS_FALSE,
        "reason": REASON_RECONCILE_ERROR,
        "message": f"error reconciling resource: {err}",
    }


def determine_in_use_condition(in_use: Optional[bool], err: Optional[BaseException] = None) -> Dict:
    if err is not None:
        return {
            "type": CONDITION_IN_USE,
            "status": STATUS_UNKNOWN,
            "reason": REASON_USAGE_CHECK_FAILED,
            "message": f"failed to determine if revision tag is in use: {err}",
        }
    if in_use:
        return {
            "type": CONDITION_IN_USE,
            "status": STATUS_TRUE,
            "reason": REASON_REFERENCED_BY_WORKLOADS,
            "message": "Referenced by at least one pod or namespace",
        }
    return {
        "type": CONDITION_IN_USE,
        "status": STATUS_FALSE,
        "reason": REASON_NOT_REFERENCED,
        "message": "Not referenced by any pod or namespace",
    }


def derive_state(conditions) -> str:
    """First non-True condition reason, in Reconciled then InUse order."""
    for type_ in (CONDITION_RECONCILED, CONDITION_IN_USE):
        cond = find_condition(conditions, type_)
        if cond is not None and cond.get("status") != STATUS_TRUE:
            return cond.get("reason") or STATUS_UNKNOWN
    return STATE_HEALTHY


async def determine_status(
    tag: IstioRevisionTag,
    revision: Optional[IstioRevision],
    reconcile_err: Optional[BaseException],
    detector: UsageDetector,
) -> Tuple[Dict, Optional[BaseException]]:
    """Compute the desired status from the current one.

    Returns the new status and the usage check error, if any. The stored
    revision and namespace are only replaced after a successful reconcile.
    """
    status = copy.deepcopy(tag.status or {})
    status["observedGeneration"] = tag.generation

    reconciled = determine_reconciled_condition(reconcile_err)
    if reconciled["status"] == STATUS_TRUE and revision is not None:
        status["istiodNamespace"] = revision.namespace
        status["istioRevision"] = revision.name

    usage_err = None
    in_use = None
    try:
        in_use = await detector.is_referenced(tag, revision)
    except Exception as e:
        usage_err = e

    conds = status.get("conditions", [])
    conds = upsert_condition(conds, reconciled)
    conds = upsert_condition(conds, determine_in_use_condition(in_use, usage_err))
    status["conditions"] = conds
    status["state"] = derive_state(conds)
    return status, usage_err

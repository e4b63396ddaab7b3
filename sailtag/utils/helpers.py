import mmh3
import hashlib
import jsonpickle
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

HASH_LENGTH = 16


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def sort_dict_keys(d):
    """Copy of ``d`` with mapping keys sorted at every depth. List order is kept."""
    if isinstance(d, dict):
        return {key: sort_dict_keys(d[key]) for key in sorted(d)}
    if isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    return d


def canonicalize_dict(data) -> str:
    """JSON text for ``data`` that only depends on content, not key order."""
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def compute_hash(data: Any) -> str:
    """Short content hash of a dict, list or string.

    murmur3 over the canonical form, then sha256 so the digest is hex and
    can be truncated.
    """
    if isinstance(data, (dict, list)):
        text = canonicalize_dict(data)
    elif isinstance(data, str):
        text = data
    else:
        raise ValueError(f"Hash of {type(data)} is not supported.")
    digest = hashlib.sha256(str(mmh3.hash128(text)).encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH]


def find_condition(conds: Optional[List[Dict]], type_: str) -> Optional[Dict]:
    return next((c for c in conds or [] if c.get("type") == type_), None)


def upsert_condition(conds, newc):
    """Replace the condition of the same type, or append it.

    lastTransitionTime is carried over unless the status changed. Fields
    absent from ``newc`` do not survive the replace.
    """
    conds = list(conds or [])
    for i, c in enumerate(conds):
        if c.get("type") != newc["type"]:
            continue
        ltt = c.get("lastTransitionTime")
        if not ltt or c.get("status") != newc["status"]:
            ltt = now()
        conds[i] = {**newc, "lastTransitionTime": ltt}
        return conds
    conds.append({**newc, "lastTransitionTime": now()})
    return conds


def deep_compare_dict(data1, data2) -> bool:
    """True if both structures hold the same content, ignoring key order."""
    if data1 is None or data2 is None:
        return data1 is data2
    if type(data1) is not type(data2):
        return False
    try:
        return canonicalize_dict(data1) == canonicalize_dict(data2)
    except (TypeError, ValueError):
        return data1 == data2

import jsonpickle
from typing import Any, Dict, Optional


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data) -> str:
    """
    Returns a canonical JSON representation of a dictionary.

    Keys are sorted recursively so the representation stays stable regardless of
    the order in which a manifest was assembled.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def drop_nones(data):
    """Recursively remove keys whose value is None.

    Manifests are applied with server-side apply, where an explicit null would
    claim ownership of a field we do not want to manage.
    """
    if isinstance(data, dict):
        return {k: drop_nones(v) for k, v in data.items() if v is not None}
    elif isinstance(data, list):
        return [drop_nones(item) for item in data]
    return data


def merge_dicts(*dicts: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Shallow merge, later dictionaries win. None entries are skipped."""
    merged = {}
    for d in dicts:
        if d:
            merged.update(d)
    return merged


def find_condition(conditions, type_: str) -> Optional[Dict[str, Any]]:
    """Return the condition of the given type from a kubernetes condition list."""
    for cond in conditions or []:
        if cond.get("type") == type_:
            return cond
    return None


def condition_is_true(conditions, type_: str) -> bool:
    cond = find_condition(conditions, type_)
    return cond is not None and str(cond.get("status")) == "True"

from typing import Any, Dict, Iterable, List, Mapping


CLOSED_STATUSES = ("repaired", "scrap")


def is_open(status: str) -> bool:
    return status not in CLOSED_STATUSES


def _open(requests: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [r for r in requests if is_open(r.get("status"))]


def critical_equipment_count(requests: Iterable[Mapping[str, Any]]) -> int:
    """Distinct equipment ids among open requests."""
    return len({r["equipment_id"] for r in _open(requests) if r.get("equipment_id") is not None})


def technician_load_pct(requests: Iterable[Mapping[str, Any]]) -> int:
    """Rounded share of open requests that carry an assignee, 0 when nothing is open."""
    open_requests = _open(requests)
    if not open_requests:
        return 0
    assigned = sum(1 for r in open_requests if r.get("assigned_to_user_id") is not None)
    return round(assigned * 100 / len(open_requests))


def technician_summary(requests: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    counts = {"total": 0, "new": 0, "in_progress": 0, "repaired": 0, "scrap": 0}
    for r in requests:
        counts["total"] += 1
        status = r.get("status")
        if status in counts:
            counts[status] += 1
    return counts


def summarize(requests: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    requests = list(requests)
    return {
        "critical_equipment_count": critical_equipment_count(requests),
        "technician_load_pct": technician_load_pct(requests),
        "open_requests": len(_open(requests)),
        "summary": technician_summary(requests),
    }

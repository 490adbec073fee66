from collections import Counter
from typing import Any, Dict, Iterable, List, Optional


STATUS_LABELS = [
    ("pending", "Pending"),
    ("in_progress", "In Progress"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]


def _field(item: Any, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def status_histogram(tasks: Iterable[Any]) -> List[Dict[str, Any]]:
    """Task counts per status, in display order; unknown statuses are ignored."""
    counts = Counter(_field(t, "status") for t in tasks)
    return [{"status": key, "label": label, "count": counts.get(key, 0)} for key, label in STATUS_LABELS]


def role_counts(assignments: Iterable[Any]) -> Dict[str, int]:
    counts = Counter(_field(a, "role") for a in assignments)
    counts.pop(None, None)
    return dict(sorted(counts.items()))


def usage_percent(used: int, limit: Optional[int]) -> int:
    if not limit or limit <= 0:
        return 0
    return int(round(used * 100.0 / limit))

"""
Session statistics: how many labels were perfect and how many showed each
defect type.

An image counts once per category it shows, however many boxes it has.
The perfect bucket and the defect buckets exclude each other.
"""
from typing import Iterable, Tuple

from src.models import DefectStat, Detection


def update(total_analyzed: int, stats: Tuple[DefectStat, ...],
           detections: Iterable[Detection]) -> Tuple[int, Tuple[DefectStat, ...]]:
    """
    Fold one analyzed image into the running statistics.

    Args:
        total_analyzed: Images analyzed so far
        stats: Current (perfect, type 1, type 2) counters
        detections: Detections returned for the new image

    Returns:
        Tuple of (new total, new stats)
    """
    detections = list(detections)
    type1_count = sum(1 for d in detections if d.class_id == 1)
    type2_count = sum(1 for d in detections if d.class_id == 2)

    perfect, type1, type2 = stats
    increments = (
        1 if type1_count == 0 and type2_count == 0 else 0,
        1 if type1_count > 0 else 0,
        1 if type2_count > 0 else 0,
    )

    new_stats = tuple(
        DefectStat(stat.name, stat.value + inc, stat.color)
        for stat, inc in zip((perfect, type1, type2), increments)
    )
    return total_analyzed + 1, new_stats


def share(stat: DefectStat, total_analyzed: int) -> float:
    """Percentage of analyzed images in this bucket, one decimal."""
    if total_analyzed <= 0:
        return 0.0
    return round(stat.value / total_analyzed * 100, 1)

"""
Strength estimation.

Estimated one-rep max uses the Epley formula everywhere in the code base:

    e1RM = weight * (1 + reps / 30)

Both the session "best set" (ClientOneRepMax) and the nightly PR detection
(PersonalRecord) go through `estimate_one_rep_max`, so the two figures for the
same lift always agree.
"""
from typing import Iterable, Optional, Sequence, TypeVar

T = TypeVar("T")


def estimate_one_rep_max(weight_kg: Optional[float], reps: Optional[int]) -> Optional[float]:
    """Epley estimate, or None when the set carries no usable load."""
    if weight_kg is None or reps is None:
        return None
    if weight_kg <= 0 or reps <= 0:
        return None
    return weight_kg * (1 + reps / 30)


def best_set(sets: Iterable[T], weight_attr: str = "weight_kg", reps_attr: str = "reps_completed") -> Optional[T]:
    """
    Set with the highest estimated 1RM; the first one wins ties.

    Works on ORM rows, pydantic models or anything exposing the two attributes.
    """
    best = None
    best_estimate = None
    for s in sets:
        estimate = estimate_one_rep_max(getattr(s, weight_attr, None), getattr(s, reps_attr, None))
        if estimate is None:
            continue
        if best_estimate is None or estimate > best_estimate:
            best, best_estimate = s, estimate
    return best


def tonnage(sets: Sequence[T], weight_attr: str = "weight_kg", reps_attr: str = "reps_completed") -> float:
    """Total volume: sum of weight x reps, missing values count as zero."""
    return sum((getattr(s, weight_attr) or 0) * (getattr(s, reps_attr) or 0) for s in sets)

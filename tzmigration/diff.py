from .instant import NEGATIVE_INFINITY, POSITIVE_INFINITY, Instant
from .models import ChangeRecord
from .table import TransitionTable


def diff(a: TransitionTable, b: TransitionTable) -> list[ChangeRecord]:
    """
    Return the maximal intervals where the effective offsets of `a` and `b`
    disagree, in increasing order.

    Each record's `off` is `b`'s offset minus `a`'s offset over that
    interval. Swapping the operands negates every `off` and keeps every
    boundary.
    """
    breakpoints = sorted(set(a.breakpoints()) | set(b.breakpoints()))
    # with no breakpoints at all, the single span compares two constant offsets
    boundaries: list[Instant] = [NEGATIVE_INFINITY, *breakpoints, POSITIVE_INFINITY]

    spans: list[tuple[Instant, Instant, int]] = []
    for ini, fin in zip(boundaries, boundaries[1:]):
        # offsets are piecewise constant, so the left edge speaks for the interval
        off = b.effective_offset_at(ini) - a.effective_offset_at(ini)
        if off == 0:
            continue
        if spans and spans[-1][1] == ini and spans[-1][2] == off:
            spans[-1] = (spans[-1][0], fin, off)
        else:
            spans.append((ini, fin, off))

    return [ChangeRecord.create(ini, fin, off) for ini, fin, off in spans]

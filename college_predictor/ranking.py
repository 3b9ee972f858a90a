import math
import numbers
import re
from enum import IntEnum
from functools import cmp_to_key
from typing import Any, List, Optional, Sequence, Tuple

from .models import AdmissionRecord

# (inclusive upper bound on rank, allowed reach-down margin), scanned in order
MARGIN_TABLE: Tuple[Tuple[int, int], ...] = (
    (10000, 1500),
    (20000, 2500),
    (30000, 3200),
    (40000, 3900),
    (50000, 4500),
    (60000, 5000),
    (70000, 5500),
    (80000, 6000),
    (90000, 8500),
    (100000, 10500),
    (150000, 12500),
    (210000, 20000),
)
FALLBACK_MARGIN = 30000

TARGET_ANCHOR_OFFSET = 1000
TARGET_ANCHOR_RANGE = 500

_NON_DIGITS = re.compile(r"[^0-9]")


def compute_lower_margin(rank: Any) -> int:
    """
    Margin by which a closing rank may sit below the candidate's rank
    and still be shown as reachable.

    Args:
        rank: Candidate rank

    Returns:
        int: Margin from the step table, 0 for a missing or invalid rank
    """
    if rank is None or isinstance(rank, bool) or not isinstance(rank, numbers.Real):
        return 0
    if math.isnan(rank) or rank < 1:
        return 0
    for upper_bound, margin in MARGIN_TABLE:
        if rank <= upper_bound:
            return margin
    return FALLBACK_MARGIN


def min_allowed_rank(rank: int) -> int:
    return max(1, rank - compute_lower_margin(rank))


def sanitize_rank(value: Any) -> Optional[int]:
    """
    Parse a stored rank value into an integer.

    Every non-digit character is stripped first, so "1234P" reads as 1234.
    Returns None when nothing numeric is left.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer():
            return int(value)
    digits = _NON_DIGITS.sub("", str(value))
    if not digits:
        return None
    return int(digits)


class Category(IntEnum):
    SWEET_SPOT = 1
    ACHIEVABLE = 2
    ASPIRATIONAL = 3
    UNREACHABLE = 4


def target_anchor(rank: int) -> int:
    return max(1, rank - TARGET_ANCHOR_OFFSET)


def categorize(closing_rank: Optional[int], rank: int) -> Category:
    """Place a sanitized closing rank relative to the candidate's rank."""
    if closing_rank is None:
        return Category.UNREACHABLE
    if closing_rank > rank:
        return Category.ASPIRATIONAL
    if abs(closing_rank - target_anchor(rank)) <= TARGET_ANCHOR_RANGE:
        return Category.SWEET_SPOT
    return Category.ACHIEVABLE


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_names(a: AdmissionRecord, b: AdmissionRecord) -> int:
    return _cmp(a.institute or "", b.institute or "") or _cmp(a.program_name or "", b.program_name or "")


def compare_candidates(a: AdmissionRecord, b: AdmissionRecord, rank: int) -> int:
    """
    Three-way relevance comparison of two records for a candidate rank.

    Returns a negative number when ``a`` should be listed before ``b``,
    positive when after, and 0 when they are indistinguishable.
    """
    cr_a = sanitize_rank(a.closing_rank)
    cr_b = sanitize_rank(b.closing_rank)
    cat_a = categorize(cr_a, rank)
    cat_b = categorize(cr_b, rank)

    if cat_a != cat_b:
        return cat_a - cat_b
    if cat_a == Category.UNREACHABLE:
        return _compare_names(a, b)

    if cat_a == Category.SWEET_SPOT:
        anchor = target_anchor(rank)
        result = _cmp(abs(cr_a - anchor), abs(cr_b - anchor))
        if result:
            return result
    # Equal sweet-spot distances fall through to the closing rank comparison
    result = _cmp(cr_a, cr_b)
    if result:
        return result
    return _compare_names(a, b)


def rank_candidates(records: Sequence[AdmissionRecord], rank: int) -> List[AdmissionRecord]:
    """Order records by relevance to ``rank``; returns a new list."""
    return sorted(records, key=cmp_to_key(lambda a, b: compare_candidates(a, b, rank)))

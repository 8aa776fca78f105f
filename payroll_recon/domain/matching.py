"""Exact-match engine - finds the ledger lines that make up each reported total"""

import time
from bisect import bisect_left, bisect_right, insort
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from payroll_recon.config import settings
from payroll_recon.domain.models import (
    ExactMatchResult,
    LedgerEntry,
    MappingRule,
    MatchCandidate,
    ReconciliationRun,
)
from payroll_recon.domain.rules import RuleSet, ensure_compiled, candidates_for_code, compile_rules, weight_of
from payroll_recon.infrastructure.observability.logging import log_match
from payroll_recon.infrastructure.observability.metrics import record_match, search_duration_histogram
from payroll_recon.utils.number_utils import ZERO, normalize_amount


class _Partial(NamedTuple):
    """Subset of one half of the search space; bit i of mask is candidate i"""

    total: Decimal
    size: int
    weight: int
    mask: int


class _SortedHalf:
    """Partials ordered by (total, mask) for range lookups"""

    def __init__(self, partials: List[_Partial]):
        self.partials = sorted(partials, key=lambda p: (p.total, p.mask))
        self.totals = [p.total for p in self.partials]

    def within(self, low: Decimal, high: Decimal) -> Tuple[int, int]:
        return bisect_left(self.totals, low), bisect_right(self.totals, high)

    def nearest(self, goal: Decimal, tolerance: Decimal) -> Optional[_Partial]:
        """Partial within tolerance of goal with the lowest (difference, mask)"""
        i, j = self.within(goal - tolerance, goal + tolerance)
        if i >= j:
            return None

        pivot = bisect_left(self.totals, goal, i, j)
        best = self.partials[pivot] if pivot < j else None
        if pivot > i:
            # Lowest mask of the run just below goal is its first partial
            start = bisect_left(self.totals, self.totals[pivot - 1], i, pivot)
            below = self.partials[start]
            if best is None or (goal - below.total, below.mask) < (best.total - goal, best.mask):
                best = below
        return best

    def above(self, goal: Decimal) -> Iterator[_Partial]:
        """Partials with total >= goal, by increasing (difference, mask)"""
        for idx in range(bisect_left(self.totals, goal), len(self.partials)):
            yield self.partials[idx]

    def below(self, goal: Decimal) -> Iterator[_Partial]:
        """Partials with total < goal, by increasing (difference, mask)"""
        end = bisect_left(self.totals, goal)
        while end > 0:
            start = bisect_left(self.totals, self.totals[end - 1], 0, end)
            for idx in range(start, end):
                yield self.partials[idx]
            end = start


def _enumerate_half(amounts: Sequence[Decimal], weights: Sequence[int], offset: int) -> List[_Partial]:
    """All 2^n subsets of a half, including the empty one"""
    partials = [_Partial(ZERO, 0, 0, 0)]
    for i, (amount, weight) in enumerate(zip(amounts, weights)):
        bit = 1 << (offset + i)
        partials.extend(
            [_Partial(p.total + amount, p.size + 1, p.weight + weight, p.mask | bit) for p in partials]
        )
    return partials


def _best_qualifying(
    left: List[_Partial],
    right_by_size: Dict[int, _SortedHalf],
    target: Decimal,
    tolerance: Decimal,
) -> Optional[_Partial]:
    """
    Best subset within tolerance by (fewest lines, highest weight, lowest
    difference, lowest bitmask).

    The bitmask term makes the winner the one a plain 1..2^k-1 enumeration
    followed by a stable sort would pick. Right partials are grouped by
    weight, so each left partial costs a few bisections however many
    subsets tie.
    """
    sizes = sorted(right_by_size)

    # Pass 1: smallest subset size that reaches the target at all
    best_size = None
    for part in left:
        low = target - tolerance - part.total
        high = target + tolerance - part.total
        for size in sizes:
            total_size = part.size + size
            if total_size == 0:
                continue
            if best_size is not None and total_size >= best_size:
                break
            i, j = right_by_size[size].within(low, high)
            if i < j:
                best_size = total_size
                break

    if best_size is None:
        return None

    by_weight: Dict[int, List[Tuple[int, _SortedHalf]]] = {}
    for size, half in right_by_size.items():
        groups: Dict[int, List[_Partial]] = {}
        for other in half.partials:
            groups.setdefault(other.weight, []).append(other)
        by_weight[size] = [(weight, _SortedHalf(groups[weight])) for weight in sorted(groups, reverse=True)]

    # Pass 2: per left partial, the heaviest right group reaching the target
    # decides, and within it the nearest total with the lowest mask
    best: Optional[_Partial] = None
    best_key = None
    for part in left:
        groups = by_weight.get(best_size - part.size)
        if not groups:
            continue
        goal = target - part.total
        for weight, half in groups:
            if best_key is not None and -(part.weight + weight) > best_key[0]:
                break
            other = half.nearest(goal, tolerance)
            if other is None:
                continue
            key = (-(part.weight + weight), abs(goal - other.total), part.mask | other.mask)
            if best_key is None or key < best_key:
                best_key = key
                best = _Partial(part.total + other.total, best_size, part.weight + weight, key[2])
            break

    return best


def _closest(
    left: List[_Partial],
    right_by_size: Dict[int, _SortedHalf],
    target: Decimal,
    limit: int,
) -> List[Tuple[Decimal, int, int, Decimal, int]]:
    """
    Up to limit non-empty subsets nearest the target, by (difference, size,
    bitmask).

    For one left partial and one right size, each walk away from the target
    yields subsets in increasing key order, so it stops at the first one
    that does not make the list.
    """
    if limit <= 0:
        return []

    best: List[Tuple[Decimal, int, int, Decimal, int]] = []

    for part in left:
        goal = target - part.total
        for size, half in right_by_size.items():
            total_size = part.size + size
            if total_size == 0:
                continue
            for walk in (half.above(goal), half.below(goal)):
                for other in walk:
                    total = part.total + other.total
                    key = (abs(total - target), total_size, part.mask | other.mask, total, part.weight + other.weight)
                    if len(best) == limit and key > best[-1]:
                        break
                    insort(best, key)
                    del best[limit:]

    return best


def _entries_for_mask(candidates: Sequence[LedgerEntry], mask: int) -> Tuple[LedgerEntry, ...]:
    return tuple(entry for i, entry in enumerate(candidates) if mask >> i & 1)


def _quick_match(
    candidates: Sequence[LedgerEntry],
    weights: Sequence[int],
    target: Decimal,
    tolerance: Decimal,
) -> Optional[Tuple[LedgerEntry, ...]]:
    """
    One-line and two-line matches over every candidate.

    Within each tier the winner is the highest weight, then the lowest
    difference, then the earliest position.
    """
    best_key = None
    best: Optional[Tuple[LedgerEntry, ...]] = None
    for i, entry in enumerate(candidates):
        difference = abs(entry.amount - target)
        if difference <= tolerance:
            key = (-weights[i], difference, i)
            if best_key is None or key < best_key:
                best_key, best = key, (entry,)
    if best is not None:
        return best

    for i in range(len(candidates)):
        for j in range(i + 1, len(candidates)):
            difference = abs(candidates[i].amount + candidates[j].amount - target)
            if difference <= tolerance:
                key = (-(weights[i] + weights[j]), difference, i, j)
                if best_key is None or key < best_key:
                    best_key, best = key, (candidates[i], candidates[j])
    return best


def find_match(
    candidates: Sequence[LedgerEntry],
    target_amount: Any,
    tolerance: Any = None,
    rules: RuleSet = (),
    code: str = "",
    max_candidates: Optional[int] = None,
    max_alternatives: Optional[int] = None,
) -> ExactMatchResult:
    """
    Find the subset of candidates whose sum lands within tolerance of target.

    Order of attempts:
    1. Zero target: empty match
    2. Best single line, then best pair, across all candidates
    3. Every non-empty subset of the first max_candidates candidates

    Among qualifying subsets the winner has the fewest lines, then the
    highest total rule weight, then the lowest difference. When nothing
    qualifies, exact is None and alternatives holds the closest subsets.

    Args:
        candidates: Ledger entries admitted for the code, in ledger order
        target_amount: Reported total (Decimal, number or formatted string)
        tolerance: Maximum absolute deviation (default settings.match_tolerance)
        rules: Full rule set, used for weighting
        code: Target code recorded on the result
        max_candidates: Cap for the subset search (default 28)
        max_alternatives: Number of alternatives on no match (default 5)

    Returns:
        ExactMatchResult for the code
    """
    target = normalize_amount(target_amount)
    tolerance = normalize_amount(settings.match_tolerance if tolerance is None else tolerance)
    cap = settings.max_subset_candidates if max_candidates is None else max_candidates
    limit = settings.max_alternatives if max_alternatives is None else max_alternatives

    result = ExactMatchResult(
        code=code,
        target_amount=target,
        exact=None,
        candidate_count=len(candidates),
    )

    if target == ZERO:
        result.exact = ()
        return result

    if not candidates:
        return result

    compiled = ensure_compiled(rules)
    weights = [weight_of(entry, compiled) for entry in candidates]

    quick = _quick_match(candidates, weights, target, tolerance)
    if quick is not None:
        result.exact = quick
        return result

    # Candidates past the cap are left out, never reordered
    searched = list(candidates[:cap])
    searched_weights = weights[:cap]
    result.searched_count = len(searched)

    half = len(searched) // 2
    amounts = [entry.amount for entry in searched]
    left = _enumerate_half(amounts[:half], searched_weights[:half], 0)
    right = _enumerate_half(amounts[half:], searched_weights[half:], half)

    sizes: Dict[int, List[_Partial]] = {}
    for part in right:
        sizes.setdefault(part.size, []).append(part)
    right_by_size = {size: _SortedHalf(parts) for size, parts in sizes.items()}

    best = _best_qualifying(left, right_by_size, target, tolerance)
    if best is not None:
        result.exact = _entries_for_mask(searched, best.mask)
        return result

    result.alternatives = [
        MatchCandidate(
            entries=_entries_for_mask(searched, mask),
            total_amount=total,
            difference=difference,
            total_weight=weight,
        )
        for difference, _size, mask, total, weight in _closest(left, right_by_size, target, limit)
    ]
    return result


def reconcile(
    entries: Sequence[LedgerEntry],
    targets: Mapping[str, Any],
    rules: Sequence[MappingRule],
    tolerance: Any = None,
    max_candidates: Optional[int] = None,
    max_alternatives: Optional[int] = None,
) -> ReconciliationRun:
    """
    Resolve every target code independently against the ledger.

    Invalid rules are skipped and reported on the run; business outcomes
    (no candidates, no match) are data on each result, never exceptions.
    """
    tolerance = normalize_amount(settings.match_tolerance if tolerance is None else tolerance)
    compiled, warnings = compile_rules(rules)

    results: Dict[str, ExactMatchResult] = {}
    for code, raw_target in targets.items():
        start_time = time.perf_counter()

        target = normalize_amount(raw_target)
        candidates = [] if target == ZERO else candidates_for_code(entries, code, compiled)

        with search_duration_histogram.time():
            result = find_match(
                candidates,
                target,
                tolerance,
                rules=compiled,
                code=code,
                max_candidates=max_candidates,
                max_alternatives=max_alternatives,
            )
        results[code] = result

        difference = None
        if result.exact is not None:
            difference = abs(sum((e.amount for e in result.exact), ZERO) - target)

        duration_ms = (time.perf_counter() - start_time) * 1000
        record_match(result)
        log_match(code, target, result.is_matched, len(result.exact or ()), difference, duration_ms)

    return ReconciliationRun(results=results, skipped_rules=warnings, tolerance=tolerance)


def find_exact_matches(
    entries: Sequence[LedgerEntry],
    targets: Mapping[str, Any],
    rules: Sequence[MappingRule],
    tolerance: Any = None,
) -> Dict[str, ExactMatchResult]:
    """Per-code exact matches; see reconcile for diagnostics"""
    return reconcile(entries, targets, rules, tolerance).results

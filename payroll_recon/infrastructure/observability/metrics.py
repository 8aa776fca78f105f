"""Prometheus metrics for match rates, subset sizes, and search cost"""

from prometheus_client import Counter, Histogram

from payroll_recon.domain.models import ExactMatchResult

# Match metrics
match_counter = Counter(
    "payroll_recon_match_total",
    "Target codes reconciled",
    ["outcome"],  # exact | zero | none | no_candidates
)

match_size_counter = Counter(
    "payroll_recon_match_size",
    "Exact matches by number of ledger lines",
    ["bucket"],  # 1, 2, 3-5, 6+
)

search_duration_histogram = Histogram(
    "payroll_recon_search_seconds",
    "Time spent resolving one target code",
    buckets=[0.001, 0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Input quality metrics
skipped_rules_counter = Counter(
    "payroll_recon_skipped_rules_total",
    "Mapping rules skipped because their regex does not compile",
)

skipped_rows_counter = Counter(
    "payroll_recon_skipped_rows_total",
    "Worksheet rows dropped during ingestion",
)


def record_match(result: ExactMatchResult) -> None:
    """Record match metrics for monitoring reconciliation hit rates"""
    if result.exact is None:
        outcome = "none" if result.candidate_count else "no_candidates"
    elif not result.exact:
        outcome = "zero"
    else:
        outcome = "exact"
    match_counter.labels(outcome=outcome).inc()

    if not result.exact:
        return

    size = len(result.exact)
    if size <= 2:
        bucket = str(size)
    elif size <= 5:
        bucket = "3-5"
    else:
        bucket = "6+"

    match_size_counter.labels(bucket=bucket).inc()

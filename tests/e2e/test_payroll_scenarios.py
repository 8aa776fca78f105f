"""
End-to-end payroll reconciliation scenarios.

Each scenario runs the full pipeline a reviewer would: worksheet grid ->
ledger entries -> reported totals -> exact matches -> learned rules.

Scenarios:
- tolerance: lines within 5 units match, lines further away do not
- minimal subset: one line beats a pair with the same sum
- weight: the line under the heavier rule wins
- split targets: disjoint codes each resolve to their own line
- zero target: always an empty match
- no match: ranked alternatives for a human reviewer
- learn and re-match: generated rules reproduce the match
"""

import pytest
from decimal import Decimal
from payroll_recon.domain.a07 import extract_income_rows
from payroll_recon.domain.ingestion import classify_by_account_prefix, tabular_to_entries
from payroll_recon.domain.matching import find_exact_matches, reconcile
from payroll_recon.domain.models import LedgerEntry, MappingRule, RuleStrategy
from payroll_recon.domain.rules import generate_exclusive_rules


def _entry(account: str, description: str, amount: int) -> LedgerEntry:
    return LedgerEntry(account=account, description=description, amount=Decimal(amount))


@pytest.mark.parametrize("amount, matched", [(49998, True), (50003, True), (50005, True), (50006, False), (50010, False)])
def test_tolerance_boundary(amount, matched):
    """
    Target 50000, tolerance 5
    Expected: single line within 5 units matches, anything further does not
    """
    entries = [_entry("5000", "Fastlønn", amount)]
    rules = [MappingRule(code="fastloenn", account="5000")]

    result = find_exact_matches(entries, {"fastloenn": 50000}, rules, tolerance=5)["fastloenn"]

    assert result.is_matched is matched
    if matched:
        assert result.exact == (entries[0],)
        assert result.alternatives == []
    else:
        assert result.alternatives[0].difference == Decimal(amount - 50000)


def test_single_line_beats_pair():
    """
    Target 100000 reachable as one line or as 60000 + 40000
    Expected: the single line
    """
    entries = [
        _entry("5000", "Lønn del 1", 60000),
        _entry("5000", "Lønn del 2", 40000),
        _entry("5000", "Lønn samlet", 100000),
    ]
    rules = [MappingRule(code="fastloenn", account="5000")]

    result = find_exact_matches(entries, {"fastloenn": 100000}, rules)["fastloenn"]

    assert result.exact == (entries[2],)


def test_higher_weight_wins():
    """
    Two lines both equal the target, one under a weight-10 rule
    Expected: the weight-10 line regardless of ledger order
    """
    entries = [
        _entry("5090", "Bonus avsatt", 25000),
        _entry("5095", "Bonus utbetalt", 25000),
    ]
    rules = [
        MappingRule(code="bonus", account="5090", weight=1),
        MappingRule(code="bonus", account="5095", weight=10),
    ]

    result = find_exact_matches(entries, {"bonus": 25000}, rules)["bonus"]

    assert result.exact == (entries[1],)


def test_split_targets_resolve_independently(payroll_ledger, exclusive_rules):
    """
    Three codes mapped to disjoint exclusive accounts
    Expected: each code gets exactly its own line
    """
    targets = {"fastloenn": 600000, "timeloenn": 350000, "fastTillegg": 50000}

    results = find_exact_matches(payroll_ledger, targets, exclusive_rules)

    assert results["fastloenn"].exact == (payroll_ledger[0],)
    assert results["timeloenn"].exact == (payroll_ledger[1],)
    assert results["fastTillegg"].exact == (payroll_ledger[2],)


def test_zero_target_is_empty_match(payroll_ledger, exclusive_rules):
    """
    Reported total of zero, even for a code with candidates
    Expected: exact is an empty match, never None and never lines
    """
    results = find_exact_matches(payroll_ledger, {"fastloenn": 0, "ukjent": Decimal("0.00")}, exclusive_rules)

    assert results["fastloenn"].exact == ()
    assert results["ukjent"].exact == ()


def test_no_match_returns_ranked_alternatives():
    """
    No subset lands within tolerance
    Expected: exact is None, alternatives sorted by difference
    """
    entries = [
        _entry("5000", "Lønn januar", 300000),
        _entry("5000", "Lønn februar", 310000),
        _entry("5000", "Korreksjon", -2500),
    ]
    rules = [MappingRule(code="fastloenn", account="5000")]

    result = find_exact_matches(entries, {"fastloenn": 620000}, rules)["fastloenn"]

    assert result.exact is None
    assert result.alternatives
    assert result.alternatives[0].total_amount == Decimal(610000)
    assert result.alternatives[0].difference == Decimal(10000)
    assert result.alternatives[0].total_weight == 2
    differences = [a.difference for a in result.alternatives]
    assert differences == sorted(differences)
    for alternative in result.alternatives:
        assert alternative.difference == abs(sum(e.amount for e in alternative.entries) - 620000)


def test_learned_rules_reproduce_match():
    """
    Keyword rules find a three-line match; generated exclusive rules are
    then the only rules
    Expected: the same match on the same ledger and target
    """
    entries = [
        _entry("5000", "Fastlønn januar", 210000),
        _entry("5001", "Fastlønn etterbetaling", 12500),
        _entry("5002", "Fastlønn korreksjon (feil)", -3500),
        _entry("5090", "Bonus", 40000),
        _entry("1920", "Bank", -259000),
    ]
    targets = {"fastloenn": 219000}
    keyword_rules = [MappingRule(code="fastloenn", keywords=("fastlønn",))]

    first = find_exact_matches(entries, targets, keyword_rules)
    learned = generate_exclusive_rules(first)
    second = find_exact_matches(entries, targets, learned)

    assert len(first["fastloenn"].exact) == 3
    assert all(rule.strategy == RuleStrategy.EXCLUSIVE and rule.weight == 10 for rule in learned)
    assert second["fastloenn"].exact == first["fastloenn"].exact


def test_worksheet_to_matches_pipeline(a07_payload):
    """
    Worksheet export and A07 report for the same month
    Expected: payroll lines are isolated and each reported code resolves
    """
    grid = [
        ["Konto", "Tekst", "Dato", "Beløp"],
        ["5000", "Fastlønn Kari", "31.01.2024", "400 000,00"],
        ["5000", "Fastlønn Ola", "31.01.2024", "200 000,00"],
        ["", "", "", ""],
        ["5020", "Fast tillegg", "31.01.2024", "50 000,00"],
        ["7100", "Bilgodtgjørelse", "31.01.2024", "3 500,50"],
        ["1920", "Bank", "31.01.2024", "-653 500,50"],
    ]
    ingested = tabular_to_entries(grid)
    buckets = classify_by_account_prefix(ingested.entries)
    report = extract_income_rows(a07_payload)
    rules = [
        MappingRule(code="fastloenn", account="5000", strategy=RuleStrategy.EXCLUSIVE),
        MappingRule(code="fastTillegg", account="5020", strategy=RuleStrategy.EXCLUSIVE),
        MappingRule(code="bilgodtgjoerelse", keywords=("bilgodtgj",)),
    ]

    run = reconcile(buckets.payroll + buckets.accruals + [ingested.entries[3]], report.totals, rules)

    assert ingested.skipped_rows == 1
    assert [e.account for e in buckets.payroll] == ["5000", "5000", "5020"]
    assert len(run.results["fastloenn"].exact) == 2
    assert run.results["fastTillegg"].exact[0].amount == Decimal("50000.00")
    assert run.results["bilgodtgjoerelse"].exact[0].account == "7100"
    assert run.skipped_rules == []

"""A07 payroll report parsing - reported totals per income code"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set

from payroll_recon.domain.models import A07IncomeRow, A07ParseResult, TotalsValidation
from payroll_recon.utils.number_utils import ZERO, normalize_amount

logger = logging.getLogger(__name__)

# Extracted and summary totals may differ by rounding
TOTALS_TOLERANCE = Decimal("0.01")


def norm(text: Optional[str]) -> str:
    """Lowercase and transliterate Norwegian letters for comparison"""
    return (text or "").lower().replace("ø", "oe").replace("å", "aa").replace("æ", "ae")


def _get(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def extract_income_rows(payload: Any) -> A07ParseResult:
    """
    Flatten mottatt.oppgave.virksomhet[].inntektsmottaker[].inntekt[] into
    income rows and sum amounts per income description.

    Structural problems are collected in errors rather than raised so a
    partially readable report still yields its usable rows.
    """
    rows: List[A07IncomeRow] = []
    totals: Dict[str, Decimal] = {}
    errors: List[str] = []

    organisations = _get(payload, "mottatt", "oppgave", "virksomhet")
    if not isinstance(organisations, list) or not organisations:
        errors.append("No organisations (virksomhet) found in A07 data")
        return A07ParseResult(rows=rows, totals=totals, errors=errors)

    for organisation in organisations:
        orgnr = _text(_get(organisation, "norskIdentifikator"))
        recipients = _get(organisation, "inntektsmottaker")
        if not isinstance(recipients, list):
            errors.append(f"No income recipients found for organisation {orgnr}")
            continue

        for recipient in recipients:
            employee_id = _text(_get(recipient, "norskIdentifikator"))
            name = _text(_get(recipient, "identifiserendeInformasjon", "navn"))
            incomes = _get(recipient, "inntekt")
            if not isinstance(incomes, list):
                continue

            for income in incomes:
                if not isinstance(income, dict):
                    errors.append(f"Malformed income line for {name or employee_id}")
                    continue

                salary = income.get("loennsinntekt") or {}
                description = _text(_get(salary, "beskrivelse"))
                count = _get(salary, "antall")
                amount = normalize_amount(income.get("beloep"))

                rows.append(
                    A07IncomeRow(
                        orgnr=orgnr,
                        employee_id=employee_id,
                        name=name,
                        description=description,
                        fordel=norm(income.get("fordel")),
                        amount=amount,
                        count=normalize_amount(count) if isinstance(count, (int, float)) else None,
                        withholding=bool(income.get("inngaarIGrunnlagForTrekk")),
                        aga=bool(income.get("utloeserArbeidsgiveravgift")),
                        accrual_start=income.get("startdatoOpptjeningsperiode") or None,
                        accrual_end=income.get("sluttdatoOpptjeningsperiode") or None,
                    )
                )

                if description:
                    totals[description] = totals.get(description, ZERO) + amount

    logger.info(
        "A07 report parsed",
        extra={"row_count": len(rows), "code_count": len(totals), "error_count": len(errors)},
    )
    return A07ParseResult(rows=rows, totals=totals, errors=errors)


def _sum_by_description(amounts: Iterable[tuple]) -> Dict[str, Decimal]:
    sums: Dict[str, Decimal] = {}
    for description, amount in amounts:
        if description:
            sums[description] = sums.get(description, ZERO) + amount
    return sums


def validate_totals(rows: List[A07IncomeRow], payload: Any) -> TotalsValidation:
    """Compare per-code totals of extracted rows with the report's summary section"""
    summary_incomes = _get(payload, "mottatt", "oppgave", "oppsummerteVirksomheter", "inntekt")
    if not isinstance(summary_incomes, list):
        summary_incomes = []

    summary = _sum_by_description(
        (_text(_get(income, "loennsinntekt", "beskrivelse")), normalize_amount(_get(income, "beloep")))
        for income in summary_incomes
    )
    extracted = _sum_by_description((row.description, row.amount) for row in rows)

    discrepancies: List[str] = []
    for code in sorted(set(summary) | set(extracted)):
        summary_amount = summary.get(code, ZERO)
        extracted_amount = extracted.get(code, ZERO)
        difference = abs(summary_amount - extracted_amount)
        if difference > TOTALS_TOLERANCE:
            discrepancies.append(
                f"{code}: summary {summary_amount:.2f} vs extracted {extracted_amount:.2f} (diff: {difference:.2f})"
            )

    return TotalsValidation(is_valid=not discrepancies, discrepancies=discrepancies)


def aga_codes(rows: Iterable[A07IncomeRow]) -> Set[str]:
    """Income codes where at least one line triggers employer tax"""
    return {row.description for row in rows if row.aga and row.description}

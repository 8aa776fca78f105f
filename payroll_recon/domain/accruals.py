"""Holiday-pay accrual adjustment of reported payroll totals"""

from decimal import Decimal
from typing import Any, Collection, Dict, List, Mapping, Optional, Sequence

from payroll_recon.config import settings
from payroll_recon.domain.ingestion import account_digits
from payroll_recon.domain.models import AccrualLine, LedgerEntry, MappingRule
from payroll_recon.utils.number_utils import ZERO, normalize_amount


def reconcile_accruals(
    targets: Mapping[str, Any],
    entries: Sequence[LedgerEntry],
    rules: Sequence[MappingRule],
    aga_codes: Collection[str] = (),
    accrual_prefixes: Optional[Sequence[str]] = None,
    default_code: Optional[str] = None,
) -> List[AccrualLine]:
    """
    Adjust each reported total by opening and closing accruals.

    Columns:
        A: reported amount
        B: opening accrual (sum of negative accrual lines, as a positive number)
        C: closing accrual (sum of positive accrual lines)
        D: expected expense, A + B - C
        E: employer-tax basis, D for codes in aga_codes, else 0

    Accrual lines go to every code with a rule on exactly that account;
    unmapped accrual lines go to default_code (holiday pay).
    """
    prefixes = tuple(accrual_prefixes or settings.accrual_account_prefixes)
    default_code = default_code or settings.default_accrual_code

    codes_by_account: Dict[str, List[str]] = {}
    for rule in rules:
        if rule.account:
            codes = codes_by_account.setdefault(rule.account, [])
            if rule.code not in codes:
                codes.append(rule.code)

    opening: Dict[str, Decimal] = {}
    closing: Dict[str, Decimal] = {}
    accounts: Dict[str, List[str]] = {}

    for entry in entries:
        if not account_digits(entry.account).startswith(prefixes):
            continue
        for code in codes_by_account.get(entry.account, [default_code]):
            if entry.amount < ZERO:
                opening[code] = opening.get(code, ZERO) + abs(entry.amount)
            else:
                closing[code] = closing.get(code, ZERO) + entry.amount
            code_accounts = accounts.setdefault(code, [])
            if entry.account not in code_accounts:
                code_accounts.append(entry.account)

    lines: List[AccrualLine] = []
    for code, raw_target in targets.items():
        reported = normalize_amount(raw_target)
        b = opening.get(code, ZERO)
        c = closing.get(code, ZERO)
        expected = reported + b - c
        lines.append(
            AccrualLine(
                code=code,
                reported=reported,
                opening_accrual=b,
                closing_accrual=c,
                expected=expected,
                aga_basis=expected if code in aga_codes else ZERO,
                accounts=accounts.get(code, []),
                difference=abs(expected - reported),
            )
        )

    return lines

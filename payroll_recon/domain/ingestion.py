"""Ledger worksheet ingestion - raw cell grid to normalized ledger entries"""

import re
from typing import Any, List, Optional, Sequence

from payroll_recon.config import settings
from payroll_recon.domain.exceptions import MissingColumnError, UnreadableSourceError
from payroll_recon.domain.models import (
    AccountBuckets,
    ColumnHints,
    ColumnMapping,
    IngestionResult,
    LedgerEntry,
)
from payroll_recon.infrastructure.observability.logging import log_ingestion
from payroll_recon.infrastructure.observability.metrics import skipped_rows_counter
from payroll_recon.utils.date_utils import parse_entry_date
from payroll_recon.utils.number_utils import ZERO, normalize_amount


_NON_DIGITS = re.compile(r"\D")


def find_column(header: Sequence[Any], hints: Sequence[str]) -> Optional[int]:
    """Index of the first header cell containing any hint (case-insensitive)"""
    lowered = [h.lower() for h in hints if h]
    for index, cell in enumerate(header):
        text = _cell_text(cell).lower()
        if text and any(hint in text for hint in lowered):
            return index
    return None


def resolve_columns(header: Sequence[Any], hints: ColumnHints) -> ColumnMapping:
    """Locate every ledger column; date is optional"""
    required = {}
    for field in ("account", "description", "amount"):
        field_hints = getattr(hints, field)
        index = find_column(header, field_hints)
        if index is None:
            raise MissingColumnError(field, field_hints)
        required[field] = index

    return ColumnMapping(date=find_column(header, hints.date), **required)


def tabular_to_entries(
    grid: Sequence[Sequence[Any]],
    column_hints: Optional[ColumnHints] = None,
    start_row: int = 0,
) -> IngestionResult:
    """
    Convert a worksheet grid into ledger entries.

    grid[start_row] is the header row, data rows follow it. Rows with an
    empty account or a zero amount are skipped (ledgers routinely carry
    blank separator and subtotal rows) and counted in skipped_rows.

    Raises:
        UnreadableSourceError: grid is empty or start_row is outside it
        MissingColumnError: account, description or amount column not found
    """
    if not grid or not 0 <= start_row < len(grid):
        raise UnreadableSourceError(f"No header row at index {start_row}")

    hints = column_hints or ColumnHints()
    columns = resolve_columns(grid[start_row], hints)

    entries: List[LedgerEntry] = []
    skipped = 0

    for row in grid[start_row + 1:]:
        row = row or []
        account = _cell_text(_cell(row, columns.account))
        amount = normalize_amount(_cell(row, columns.amount))

        if not account or amount == ZERO:
            skipped += 1
            continue

        entry_date = None
        if columns.date is not None:
            entry_date = parse_entry_date(_cell(row, columns.date))

        entries.append(
            LedgerEntry(
                account=account,
                description=_cell_text(_cell(row, columns.description)),
                amount=amount,
                date=entry_date,
            )
        )

    if skipped:
        skipped_rows_counter.inc(skipped)
    log_ingestion(len(entries), skipped, columns)

    return IngestionResult(entries=entries, skipped_rows=skipped, columns=columns)


def classify_by_account_prefix(
    entries: Sequence[LedgerEntry],
    payroll_prefixes: Optional[Sequence[str]] = None,
    accrual_prefixes: Optional[Sequence[str]] = None,
) -> AccountBuckets:
    """
    Split entries into payroll-expense and holiday-pay accrual buckets.

    Prefixes are tested against the digits of the account number. Accrual
    prefixes are tested first; an entry lands in at most one bucket and
    entries matching neither are dropped.
    """
    payroll_prefixes = tuple(payroll_prefixes or settings.payroll_account_prefixes)
    accrual_prefixes = tuple(accrual_prefixes or settings.accrual_account_prefixes)

    buckets = AccountBuckets(payroll=[], accruals=[])
    for entry in entries:
        digits = account_digits(entry.account)
        if not digits:
            continue
        if digits.startswith(accrual_prefixes):
            buckets.accruals.append(entry)
        elif digits.startswith(payroll_prefixes):
            buckets.payroll.append(entry)

    return buckets


def account_digits(account: str) -> str:
    return _NON_DIGITS.sub("", account)


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _cell_text(value: Any) -> str:
    """Render a cell as text; integral floats like 5000.0 become '5000'"""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()

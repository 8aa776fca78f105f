"""Domain models - pure Python dataclasses representing business entities"""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple


class RuleStrategy(str, Enum):
    """How a downstream step treats entries a rule classifies"""

    EXCLUSIVE = "exclusive"
    SPLIT = "split"  # carried as data only, never splits amounts
    SCORE = "score"


@dataclass(frozen=True)
class LedgerEntry:
    """One general-ledger line"""

    account: str
    description: str
    amount: Decimal
    date: Optional[datetime.date] = None


@dataclass(frozen=True)
class MappingRule:
    """Classifier linking ledger entries to a target code"""

    code: str
    account: str = ""
    strategy: RuleStrategy = RuleStrategy.SCORE
    weight: int = 1
    keywords: Tuple[str, ...] = ()
    regex: str = ""
    priority: int = 0
    month_hints: Tuple[int, ...] = ()
    split: Optional[Decimal] = None


@dataclass(frozen=True)
class RuleWarning:
    """Rule skipped because its regex does not compile"""

    code: str
    regex: str
    error: str


@dataclass
class MatchCandidate:
    """A subset of candidate entries and how close it lands"""

    entries: Tuple[LedgerEntry, ...]
    total_amount: Decimal
    difference: Decimal
    total_weight: int


@dataclass
class ExactMatchResult:
    """Outcome of reconciling one target code"""

    code: str
    target_amount: Decimal
    exact: Optional[Tuple[LedgerEntry, ...]]
    alternatives: List[MatchCandidate] = field(default_factory=list)
    candidate_count: int = 0
    searched_count: int = 0

    @property
    def is_matched(self) -> bool:
        return self.exact is not None


@dataclass
class ReconciliationRun:
    """All per-code results of one invocation plus rule diagnostics"""

    results: Dict[str, ExactMatchResult]
    skipped_rules: List[RuleWarning]
    tolerance: Decimal


@dataclass(frozen=True)
class ColumnHints:
    """Header substrings that identify each ledger column"""

    account: Tuple[str, ...] = ("konto", "account")
    description: Tuple[str, ...] = ("tekst", "beskrivelse", "description", "text")
    amount: Tuple[str, ...] = ("beløp", "belop", "amount", "saldo")
    date: Tuple[str, ...] = ("dato", "date")


@dataclass(frozen=True)
class ColumnMapping:
    """Resolved column indexes of a worksheet"""

    account: int
    description: int
    amount: int
    date: Optional[int] = None


@dataclass
class IngestionResult:
    """Entries parsed from a worksheet"""

    entries: List[LedgerEntry]
    skipped_rows: int
    columns: ColumnMapping


@dataclass
class AccountBuckets:
    """Entries split by chart-of-accounts range"""

    payroll: List[LedgerEntry]
    accruals: List[LedgerEntry]


@dataclass
class A07IncomeRow:
    """One income line for one employee in an A07 report"""

    orgnr: str
    employee_id: str
    name: str
    description: str  # A07 income code, e.g. 'fastloenn'
    fordel: str  # 'kontantytelse' | 'naturalytelse' | 'utgiftsgodtgjoerelse'
    amount: Decimal
    count: Optional[Decimal] = None
    withholding: bool = False
    aga: bool = False
    accrual_start: Optional[str] = None
    accrual_end: Optional[str] = None


@dataclass
class A07ParseResult:
    """Flattened A07 report"""

    rows: List[A07IncomeRow]
    totals: Dict[str, Decimal]
    errors: List[str]


@dataclass
class TotalsValidation:
    """Extracted totals compared with the report summary"""

    is_valid: bool
    discrepancies: List[str]


@dataclass
class AccrualLine:
    """Reported amount adjusted by holiday-pay accruals (columns A-E)"""

    code: str
    reported: Decimal  # A
    opening_accrual: Decimal  # B
    closing_accrual: Decimal  # C
    expected: Decimal  # D = A + B - C
    aga_basis: Decimal  # E
    accounts: List[str]
    difference: Decimal


@dataclass(frozen=True)
class KeywordRule:
    """Payroll term family with the A07 codes it suggests"""

    keywords: Tuple[str, ...]
    variations: Tuple[str, ...]  # misspellings and split spellings
    a07_codes: Tuple[str, ...]
    weight: int  # 1-5
    category: str


@dataclass
class A07Suggestion:
    """Suggested A07 code for an account name"""

    code: str
    confidence: float
    reason: str

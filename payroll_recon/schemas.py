"""Pydantic schemas for JSON-shaped rule, ledger and result payloads"""

import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from payroll_recon.domain.exceptions import InvalidRuleError
from payroll_recon.domain.models import (
    ExactMatchResult,
    LedgerEntry,
    MappingRule,
    MatchCandidate,
    ReconciliationRun,
    RuleStrategy,
)
from payroll_recon.utils.date_utils import parse_entry_date
from payroll_recon.utils.number_utils import normalize_amount


class MappingRuleSchema(BaseModel):
    """Stored mapping rule; persistence fields such as id or client_id are ignored"""

    model_config = ConfigDict(extra="ignore")

    code: str = Field(..., min_length=1, description="Target code the rule classifies into")
    account: str = ""
    strategy: RuleStrategy = RuleStrategy.SCORE
    weight: int = Field(1, ge=1)
    keywords: List[str] = Field(default_factory=list)
    regex: str = ""
    priority: int = 0
    month_hints: List[int] = Field(default_factory=list)
    split: Optional[Decimal] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, value: Any) -> Any:
        """Keywords arrive as a list or as one comma-separated string"""
        if value is None:
            return []
        if isinstance(value, str):
            return [k.strip() for k in value.split(",") if k.strip()]
        return value

    @field_validator("account", "regex", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("month_hints", mode="before")
    @classmethod
    def none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> MappingRule:
        return MappingRule(
            code=self.code,
            account=self.account.strip(),
            strategy=self.strategy,
            weight=self.weight,
            keywords=tuple(self.keywords),
            regex=self.regex,
            priority=self.priority,
            month_hints=tuple(self.month_hints),
            split=self.split,
        )

    @classmethod
    def from_domain(cls, rule: MappingRule) -> "MappingRuleSchema":
        return cls(
            code=rule.code,
            account=rule.account,
            strategy=rule.strategy,
            weight=rule.weight,
            keywords=list(rule.keywords),
            regex=rule.regex,
            priority=rule.priority,
            month_hints=list(rule.month_hints),
            split=rule.split,
        )


class LedgerEntrySchema(BaseModel):
    """Ledger line; accepts 'text' as an alias for description"""

    account: str
    description: str = Field("", validation_alias=AliasChoices("description", "text"))
    amount: Decimal
    date: Optional[datetime.date] = None

    @field_validator("account", mode="before")
    @classmethod
    def account_as_text(cls, value: Any) -> Any:
        return "" if value is None else str(value).strip()

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal:
        return normalize_amount(value)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Optional[datetime.date]:
        return parse_entry_date(value)

    def to_domain(self) -> LedgerEntry:
        return LedgerEntry(
            account=self.account,
            description=self.description,
            amount=self.amount,
            date=self.date,
        )

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntrySchema":
        return cls(account=entry.account, description=entry.description, amount=entry.amount, date=entry.date)


class MatchCandidateSchema(BaseModel):
    """One alternative subset shown to a reviewer"""

    entries: List[LedgerEntrySchema]
    total_amount: Decimal
    difference: Decimal
    total_weight: int

    @classmethod
    def from_domain(cls, candidate: MatchCandidate) -> "MatchCandidateSchema":
        return cls(
            entries=[LedgerEntrySchema.from_domain(e) for e in candidate.entries],
            total_amount=candidate.total_amount,
            difference=candidate.difference,
            total_weight=candidate.total_weight,
        )


class ExactMatchResultSchema(BaseModel):
    """Match outcome for one target code"""

    code: str
    target_amount: Decimal
    exact: Optional[List[LedgerEntrySchema]]
    alternatives: List[MatchCandidateSchema]
    candidate_count: int
    searched_count: int

    @classmethod
    def from_domain(cls, result: ExactMatchResult) -> "ExactMatchResultSchema":
        exact = None
        if result.exact is not None:
            exact = [LedgerEntrySchema.from_domain(e) for e in result.exact]
        return cls(
            code=result.code,
            target_amount=result.target_amount,
            exact=exact,
            alternatives=[MatchCandidateSchema.from_domain(a) for a in result.alternatives],
            candidate_count=result.candidate_count,
            searched_count=result.searched_count,
        )


class RuleWarningSchema(BaseModel):
    code: str
    regex: str
    error: str


class ReconciliationRunSchema(BaseModel):
    """Full reconciliation output"""

    tolerance: Decimal
    results: Dict[str, ExactMatchResultSchema]
    skipped_rules: List[RuleWarningSchema]

    @classmethod
    def from_domain(cls, run: ReconciliationRun) -> "ReconciliationRunSchema":
        return cls(
            tolerance=run.tolerance,
            results={code: ExactMatchResultSchema.from_domain(r) for code, r in run.results.items()},
            skipped_rules=[RuleWarningSchema(code=w.code, regex=w.regex, error=w.error) for w in run.skipped_rules],
        )


def parse_rules(payloads: Iterable[Mapping[str, Any]]) -> List[MappingRule]:
    """
    Turn stored rule payloads into domain rules.

    Raises:
        InvalidRuleError: a payload lacks a code or carries an invalid field
    """
    rules = []
    for index, payload in enumerate(payloads):
        try:
            rules.append(MappingRuleSchema.model_validate(payload).to_domain())
        except ValidationError as e:
            raise InvalidRuleError(f"Rule #{index} is invalid: {e.errors()[0]['msg']}") from e
    return rules


def parse_entries(payloads: Iterable[Mapping[str, Any]]) -> List[LedgerEntry]:
    """Turn JSON ledger lines into domain entries"""
    return [LedgerEntrySchema.model_validate(payload).to_domain() for payload in payloads]


def parse_targets(payload: Mapping[str, Any]) -> Dict[str, Decimal]:
    """Normalize a code -> amount mapping"""
    return {str(code): normalize_amount(amount) for code, amount in payload.items()}

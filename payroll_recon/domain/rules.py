"""Rule-based candidate classification and exclusive-rule synthesis"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from payroll_recon.config import settings
from payroll_recon.domain.models import (
    ExactMatchResult,
    LedgerEntry,
    MappingRule,
    RuleStrategy,
    RuleWarning,
)
from payroll_recon.infrastructure.observability.metrics import skipped_rules_counter

logger = logging.getLogger(__name__)

# Characters JavaScript's RegExp treats as special; generated patterns stay
# portable to clients that evaluate rules in the browser.
_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")


@dataclass(frozen=True)
class CompiledRule:
    """A mapping rule with its keywords lowered and regex compiled"""

    rule: MappingRule
    keywords: Tuple[str, ...]
    pattern: Optional[Pattern[str]]

    def accepts(self, entry: LedgerEntry) -> bool:
        """Account equality, account containment, keyword, or regex"""
        account_pattern = self.rule.account
        if account_pattern and (entry.account == account_pattern or account_pattern in entry.account):
            return True

        if self.keywords:
            account_text = entry.account.lower()
            description_text = entry.description.lower()
            if any(k in description_text or k in account_text for k in self.keywords):
                return True

        if self.pattern is not None:
            if self.pattern.search(entry.account) or self.pattern.search(entry.description):
                return True

        return False


RuleSet = Union[Sequence[MappingRule], Sequence[CompiledRule]]


def _compile_rule(rule: MappingRule) -> Tuple[Optional[CompiledRule], Optional[str]]:
    """Compiled rule, or None and the regex error"""
    pattern = None
    if rule.regex and rule.regex.strip():
        try:
            pattern = re.compile(rule.regex, re.IGNORECASE)
        except re.error as e:
            return None, str(e)

    keywords = tuple(k.lower() for k in rule.keywords if k and k.strip())
    return CompiledRule(rule=rule, keywords=keywords, pattern=pattern), None


def compile_rules(rules: Iterable[MappingRule]) -> Tuple[List[CompiledRule], List[RuleWarning]]:
    """
    Prepare rules for matching.

    A rule whose regex does not compile is dropped entirely, for candidate
    selection and weighting alike, and reported as a RuleWarning.
    """
    compiled: List[CompiledRule] = []
    warnings: List[RuleWarning] = []

    for rule in rules:
        result, error = _compile_rule(rule)
        if result is None:
            warnings.append(RuleWarning(code=rule.code, regex=rule.regex, error=error))
            skipped_rules_counter.inc()
            logger.warning(
                f"Invalid regex in mapping rule: {rule.regex!r}",
                extra={"code": rule.code, "account": rule.account, "error": error},
            )
            continue
        compiled.append(result)

    return compiled, warnings


def ensure_compiled(rules: RuleSet) -> List[CompiledRule]:
    """
    Compiled form of rules for the lookup helpers.

    Raw rules are compiled quietly; invalid ones are dropped here and only
    reported by compile_rules, once per run.
    """
    compiled = []
    for rule in rules:
        if isinstance(rule, CompiledRule):
            compiled.append(rule)
            continue
        result, _ = _compile_rule(rule)
        if result is not None:
            compiled.append(result)
    return compiled


def candidates_for_code(
    entries: Sequence[LedgerEntry],
    code: str,
    rules: RuleSet,
) -> List[LedgerEntry]:
    """Entries, in ledger order, accepted by any rule targeting code"""
    relevant = [r for r in ensure_compiled(rules) if r.rule.code == code]
    if not relevant:
        return []
    return [entry for entry in entries if any(r.accepts(entry) for r in relevant)]


def weight_of(entry: LedgerEntry, rules: RuleSet) -> int:
    """
    Highest weight among rules, of any code, whose account pattern is
    contained in the entry's account. Defaults to 1.

    Only the account pattern counts here; entries admitted by keyword or
    regex alone keep the default weight.
    """
    weight = 1
    for compiled in ensure_compiled(rules):
        rule = compiled.rule
        if rule.account and rule.account in entry.account:
            weight = max(weight, rule.weight)
    return weight


def escape_description(text: str) -> str:
    """Escape regex special characters in a ledger description"""
    return _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def generate_exclusive_rules(
    matches: Mapping[str, ExactMatchResult],
    weight: Optional[int] = None,
    priority: Optional[int] = None,
) -> List[MappingRule]:
    """
    Derive one exclusive rule per (code, account) from confirmed matches.

    The regex alternates the escaped descriptions of the matched lines on
    that account. Codes without a non-empty exact match produce nothing.
    """
    weight = settings.generated_rule_weight if weight is None else weight
    priority = settings.generated_rule_priority if priority is None else priority

    generated: List[MappingRule] = []
    for code, result in matches.items():
        if not result.exact:
            continue

        by_account: Dict[str, List[str]] = {}
        for entry in result.exact:
            descriptions = by_account.setdefault(entry.account, [])
            escaped = escape_description(entry.description)
            if escaped not in descriptions:
                descriptions.append(escaped)

        for account, parts in by_account.items():
            regex = parts[0] if len(parts) == 1 else f"({'|'.join(parts)})"
            generated.append(
                MappingRule(
                    code=code,
                    account=account,
                    strategy=RuleStrategy.EXCLUSIVE,
                    weight=weight,
                    regex=regex,
                    priority=priority,
                )
            )

    logger.info(f"Generated {len(generated)} exclusive rules", extra={"code_count": len(matches)})
    return generated

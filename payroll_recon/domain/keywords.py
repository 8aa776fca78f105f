"""Norwegian payroll keyword library for name-based A07 code suggestions"""

import logging
import re
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from payroll_recon.domain.models import A07Suggestion, KeywordRule, MappingRule, RuleStrategy

logger = logging.getLogger(__name__)

_WORD_SPLIT = re.compile(r"[\s-]")

PARTIAL_MATCH_FACTOR = 0.8
SUGGESTION_THRESHOLD = 0.6
CONFIDENCE_BOOST = 0.3
MAX_WEIGHT = 5

PAYROLL_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    # Salary
    KeywordRule(
        keywords=("fastlønn", "fast lønn", "grunnlønn", "månedslønn"),
        variations=("fast lön", "fastlön", "grunn lønn", "måneds lønn", "månedslon"),
        a07_codes=("fastLonn", "grunnlonn"),
        weight=5,
        category="grunnlønn",
    ),
    KeywordRule(
        keywords=("timelønn", "time lønn", "timerlønn", "timebetaling"),
        variations=("time lön", "timelön", "timer lønn", "time betaling"),
        a07_codes=("timeLonn", "variabelLonn"),
        weight=4,
        category="variabel",
    ),
    # Vehicle allowances
    KeywordRule(
        keywords=("bilgodtgjørelse", "bil godtgjørelse", "kjøregodtgjørelse", "reisegodtgjørelse"),
        variations=("bil godtgjörelse", "kjöre godtgjörelse", "reise godtgjörelse", "bilgodtgjörelse"),
        a07_codes=("bilGodtgjorelse", "reiseGodtgjorelse"),
        weight=5,
        category="godtgjørelser",
    ),
    KeywordRule(
        keywords=("kilometergodtgjørelse", "km godtgjørelse", "kilometer godtgjørelse"),
        variations=("km godtgjörelse", "kilometer godtgjörelse"),
        a07_codes=("bilGodtgjorelse",),
        weight=5,
        category="godtgjørelser",
    ),
    # Overtime and supplements
    KeywordRule(
        keywords=("overtid", "overtidsbetaling", "overtidstillegg", "overtidslønn"),
        variations=("over tid", "overtids betaling", "overtids tillegg", "overtids lønn"),
        a07_codes=("overtidstillegg", "variabelLonn"),
        weight=4,
        category="tillegg",
    ),
    KeywordRule(
        keywords=("skifttillegg", "skift tillegg", "turnustillegg", "turnus tillegg"),
        variations=("skifte tillegg", "turnus-tillegg"),
        a07_codes=("skifttillegg", "variabelLonn"),
        weight=4,
        category="tillegg",
    ),
    KeywordRule(
        keywords=("helgetillegg", "helge tillegg", "søndagstillegg", "helligdagstillegg"),
        variations=("helge-tillegg", "söndag tillegg", "helligdag tillegg"),
        a07_codes=("helgetillegg", "variabelLonn"),
        weight=4,
        category="tillegg",
    ),
    KeywordRule(
        keywords=("kveldstillegg", "kveld tillegg", "natttillegg", "natt tillegg"),
        variations=("kveld-tillegg", "natt-tillegg"),
        a07_codes=("kveldstillegg", "natttillegg", "variabelLonn"),
        weight=4,
        category="tillegg",
    ),
    # Bonuses
    KeywordRule(
        keywords=("bonus", "bonusutbetaling", "provisjon", "tantieme"),
        variations=("bonus utbetaling", "provisjoner"),
        a07_codes=("bonus", "provisjon", "variabelLonn"),
        weight=4,
        category="bonus",
    ),
    KeywordRule(
        keywords=("resultatbonus", "resultat bonus", "prestasjonsbonus", "prestasjon bonus"),
        variations=("resultat-bonus", "prestasjon-bonus"),
        a07_codes=("bonus", "variabelLonn"),
        weight=4,
        category="bonus",
    ),
    # Holiday pay
    KeywordRule(
        keywords=("feriepenger", "ferie penger", "ferielønn", "ferie lønn"),
        variations=("ferie-penger", "ferie-lønn"),
        a07_codes=("feriepenger",),
        weight=5,
        category="ferie",
    ),
    KeywordRule(
        keywords=("avviklingsferie", "avvikling ferie", "ferietrekk", "ferie trekk"),
        variations=("avvikling-ferie", "ferie-trekk"),
        a07_codes=("feriepenger", "ferietrekk"),
        weight=4,
        category="ferie",
    ),
    # Benefits
    KeywordRule(
        keywords=("sykepenger", "syke penger", "sykelønn", "syke lønn"),
        variations=("syke-penger", "syke-lønn"),
        a07_codes=("sykepenger",),
        weight=5,
        category="ytelser",
    ),
    KeywordRule(
        keywords=("foreldrepenger", "foreldre penger", "foreldrelønn", "foreldre lønn"),
        variations=("foreldre-penger", "foreldre-lønn"),
        a07_codes=("foreldrepenger",),
        weight=5,
        category="ytelser",
    ),
    # Deductions
    KeywordRule(
        keywords=("skattetrekk", "skatte trekk", "forskuddsskatt", "forskudds skatt"),
        variations=("skatte-trekk", "forskudds-skatt"),
        a07_codes=("skattetrekk",),
        weight=5,
        category="trekk",
    ),
    KeywordRule(
        keywords=("pensjon", "pensjonspremie", "pensjonstrekk", "tjenestepensjon"),
        variations=("pensjon premie", "pensjon trekk", "tjeneste pensjon"),
        a07_codes=("pensjon", "pensjonstrekk"),
        weight=4,
        category="trekk",
    ),
    KeywordRule(
        keywords=("fagforeningskontingent", "fagforening kontingent", "fagforeningsavgift"),
        variations=("fagforening avgift", "fagforening-kontingent"),
        a07_codes=("fagforeningskontingent",),
        weight=4,
        category="trekk",
    ),
    # Other allowances
    KeywordRule(
        keywords=("kostgodtgjørelse", "kost godtgjørelse", "kostpenger", "kost penger"),
        variations=("kost godtgjörelse", "kost-godtgjörelse", "kost-penger"),
        a07_codes=("kostGodtgjorelse",),
        weight=4,
        category="godtgjørelser",
    ),
    KeywordRule(
        keywords=("telefongodtgjørelse", "telefon godtgjørelse", "telefondekning"),
        variations=("telefon godtgjörelse", "telefon-godtgjörelse"),
        a07_codes=("telefonGodtgjorelse",),
        weight=4,
        category="godtgjørelser",
    ),
    KeywordRule(
        keywords=("hjemmekontor", "hjemme kontor", "hjemmekontorgodtgjørelse"),
        variations=("hjemme-kontor", "hjemmekontor godtgjörelse"),
        a07_codes=("hjemmekontorGodtgjorelse",),
        weight=4,
        category="godtgjørelser",
    ),
    # Special
    KeywordRule(
        keywords=("sluttvederlag", "sluttbonus", "fratredelsesytelse"),
        variations=("slutt vederlag", "slutt bonus", "fratredelse ytelse"),
        a07_codes=("sluttvederlag",),
        weight=4,
        category="spesielt",
    ),
    KeywordRule(
        keywords=("gavekort", "gave kort", "naturalytelse", "natural ytelse"),
        variations=("gave-kort", "natural-ytelse"),
        a07_codes=("naturalytelse",),
        weight=3,
        category="spesielt",
    ),
)


def all_keywords(rules: Sequence[KeywordRule] = PAYROLL_KEYWORD_RULES) -> List[str]:
    """Every keyword and variation once, in table order"""
    return list(dict.fromkeys(term for rule in rules for term in (*rule.keywords, *rule.variations)))


def keyword_score(text: str, rule: KeywordRule) -> float:
    """
    How well text matches a rule.

    1.0 when any term occurs in the text. Otherwise terms longer than four
    characters score by the share of their words (longer than two
    characters) found in the text, scaled by 0.8.
    """
    normalized = text.lower().strip()
    best = 0.0

    for term in (*rule.keywords, *rule.variations):
        term = term.lower()
        if term in normalized:
            return 1.0
        if len(term) > 4:
            words = _WORD_SPLIT.split(term)
            found = [w for w in words if len(w) > 2 and w in normalized]
            if found:
                best = max(best, len(found) / len(words) * PARTIAL_MATCH_FACTOR)

    return best


def find_matching_keyword_rules(
    text: str,
    threshold: float = 0.8,
    rules: Sequence[KeywordRule] = PAYROLL_KEYWORD_RULES,
) -> List[KeywordRule]:
    """Rules scoring at least threshold, best score first, then highest weight"""
    scored = []
    for rule in rules:
        score = keyword_score(text, rule)
        if score >= threshold:
            scored.append((score, rule))

    scored.sort(key=lambda item: (-item[0], -item[1].weight))
    return [rule for _, rule in scored]


def suggest_a07_codes(
    text: str,
    rules: Sequence[KeywordRule] = PAYROLL_KEYWORD_RULES,
) -> List[A07Suggestion]:
    """
    Suggested A07 codes for an account name, most confident first.

    Confidence starts at weight / 5 for the first rule naming a code; each
    further rule naming it adds 30% of its own confidence, capped at 1.
    """
    suggestions: List[A07Suggestion] = []
    by_code: Dict[str, A07Suggestion] = {}

    for rule in find_matching_keyword_rules(text, SUGGESTION_THRESHOLD, rules):
        confidence = rule.weight / MAX_WEIGHT
        for code in rule.a07_codes:
            existing = by_code.get(code)
            if existing is not None:
                existing.confidence = min(1.0, existing.confidence + confidence * CONFIDENCE_BOOST)
                existing.reason += f", {rule.category}"
                continue
            suggestion = A07Suggestion(
                code=code,
                confidence=confidence,
                reason=f"Matcher på: {rule.category} ({rule.keywords[0]})",
            )
            by_code[code] = suggestion
            suggestions.append(suggestion)

    suggestions.sort(key=lambda s: -s.confidence)
    return suggestions


def keyword_mapping_rules(
    codes: Optional[Collection[str]] = None,
    rules: Sequence[KeywordRule] = PAYROLL_KEYWORD_RULES,
) -> List[MappingRule]:
    """
    Keyword mapping rules for the matching engine, one per (A07 code, term
    family).

    Args:
        codes: Only emit rules for these codes (default: every code in the table)
        rules: Keyword table

    Returns:
        SCORE rules carrying the family's keywords and variations
    """
    mapping_rules = [
        MappingRule(
            code=code,
            strategy=RuleStrategy.SCORE,
            weight=rule.weight,
            keywords=(*rule.keywords, *rule.variations),
        )
        for rule in rules
        for code in rule.a07_codes
        if codes is None or code in codes
    ]

    logger.debug(f"Built {len(mapping_rules)} keyword mapping rules", extra={"code_count": len(codes or ())})
    return mapping_rules

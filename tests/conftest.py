"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import List
from payroll_recon.domain.models import LedgerEntry, MappingRule, RuleStrategy


def entry(account: str, description: str, amount, entry_date: date | None = None) -> LedgerEntry:
    return LedgerEntry(account=account, description=description, amount=Decimal(str(amount)), date=entry_date)


@pytest.fixture
def payroll_ledger() -> List[LedgerEntry]:
    """One month of payroll postings on a Norwegian chart of accounts"""
    return [
        entry("5000", "Fastlønn januar", 600000, date(2024, 1, 31)),
        entry("5010", "Timelønn januar", 350000, date(2024, 1, 31)),
        entry("5020", "Fast tillegg januar", 50000, date(2024, 1, 31)),
        entry("5400", "Arbeidsgiveravgift", 141000, date(2024, 1, 31)),
        entry("2940", "Avsatte feriepenger IB", -120000, date(2024, 1, 1)),
        entry("2940", "Avsatte feriepenger UB", 96000, date(2024, 1, 31)),
        entry("1920", "Bankinnskudd", -1000000, date(2024, 1, 31)),
    ]


@pytest.fixture
def exclusive_rules() -> List[MappingRule]:
    """Disjoint exclusive rules for three payroll codes"""
    return [
        MappingRule(code="fastloenn", account="5000", strategy=RuleStrategy.EXCLUSIVE, weight=5),
        MappingRule(code="timeloenn", account="5010", strategy=RuleStrategy.EXCLUSIVE, weight=5),
        MappingRule(code="fastTillegg", account="5020", strategy=RuleStrategy.EXCLUSIVE, weight=5),
    ]


@pytest.fixture
def a07_payload() -> dict:
    """A07 report with two employees and a matching summary section"""
    return {
        "mottatt": {
            "oppgave": {
                "virksomhet": [
                    {
                        "norskIdentifikator": "999888777",
                        "inntektsmottaker": [
                            {
                                "norskIdentifikator": "01017012345",
                                "identifiserendeInformasjon": {"navn": "Kari Nordmann"},
                                "inntekt": [
                                    {
                                        "fordel": "kontantytelse",
                                        "beloep": 400000,
                                        "inngaarIGrunnlagForTrekk": True,
                                        "utloeserArbeidsgiveravgift": True,
                                        "loennsinntekt": {"beskrivelse": "fastloenn"},
                                    },
                                    {
                                        "fordel": "kontantytelse",
                                        "beloep": 50000,
                                        "inngaarIGrunnlagForTrekk": True,
                                        "utloeserArbeidsgiveravgift": True,
                                        "loennsinntekt": {"beskrivelse": "fastTillegg"},
                                    },
                                ],
                            },
                            {
                                "norskIdentifikator": "02028012345",
                                "identifiserendeInformasjon": {"navn": "Ola Nordmann"},
                                "inntekt": [
                                    {
                                        "fordel": "kontantytelse",
                                        "beloep": 200000,
                                        "inngaarIGrunnlagForTrekk": True,
                                        "utloeserArbeidsgiveravgift": True,
                                        "loennsinntekt": {"beskrivelse": "fastloenn"},
                                    },
                                    {
                                        "fordel": "utgiftsgodtgjørelse",
                                        "beloep": 3500.5,
                                        "inngaarIGrunnlagForTrekk": False,
                                        "utloeserArbeidsgiveravgift": False,
                                        "loennsinntekt": {"beskrivelse": "bilgodtgjoerelse", "antall": 1000},
                                        "startdatoOpptjeningsperiode": "2024-01-01",
                                        "sluttdatoOpptjeningsperiode": "2024-01-31",
                                    },
                                ],
                            },
                        ],
                    }
                ],
                "oppsummerteVirksomheter": {
                    "inntekt": [
                        {"beloep": 600000, "loennsinntekt": {"beskrivelse": "fastloenn"}},
                        {"beloep": 50000, "loennsinntekt": {"beskrivelse": "fastTillegg"}},
                        {"beloep": 3500.5, "loennsinntekt": {"beskrivelse": "bilgodtgjoerelse"}},
                    ]
                },
            }
        }
    }

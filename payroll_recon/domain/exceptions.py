"""Domain-specific exceptions"""

from typing import Sequence


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class IngestionError(DomainException):
    """Ledger worksheet cannot be turned into entries"""

    pass


class MissingColumnError(IngestionError):
    """Required column not found in the header row"""

    def __init__(self, field: str, hints: Sequence[str]):
        self.field = field
        self.hints = tuple(hints)
        super().__init__(f"Missing {field} column (looked for: {', '.join(self.hints)})")


class UnreadableSourceError(IngestionError):
    """Worksheet is empty or has no usable header row"""

    pass


class InvalidRuleError(DomainException):
    """Rule payload cannot form a mapping rule"""

    pass

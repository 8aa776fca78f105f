"""Date parsing utilities"""

from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil.parser import ParserError, parse as parse_date

# Excel's day zero (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)


def parse_entry_date(raw: Any) -> Optional[date]:
    """Parse a ledger date cell permissively; unparsable values yield None"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        return _from_excel_serial(raw)

    text = str(raw).strip()
    if not text:
        return None

    try:
        return parse_date(text, dayfirst=True).date()
    except (ParserError, ValueError, OverflowError):
        return None


def _from_excel_serial(serial: float) -> Optional[date]:
    """Excel stores dates as days since 1899-12-30"""
    if not 0 < serial < 2958466:  # 9999-12-31
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))

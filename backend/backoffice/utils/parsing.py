"""
Lenient number and date parsing for marketplace spreadsheet cells.

Spreadsheet cells are frequently blank or malformed, so nothing here raises on
bad cell content: numbers fall back to 0 and dates to None. Callers drop the
row when a required date comes back as None.

Timestamps are returned as naive datetimes in UTC.
"""

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

import pandas as pd

_CURRENCY_RE = re.compile(r"R\$|BRL|US\$|\$", re.IGNORECASE)

# dd/mm/yyyy with optional hh:mm[:ss]: always day first
_DMY_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:[ T]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

# Excel serial day 0 (accounts for the 1900 leap-year bug)
_EXCEL_EPOCH = datetime(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465          # 9999-12-31
# Numeric *strings* are only read as serials inside this window (1954 → 2173),
# so compact dates like "20260113" fall through to the fixed formats.
_SERIAL_STR_RANGE = (20000, 100000)

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y%m%d",
)


# =============================================================================
# Cell lookup
# =============================================================================

def is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    return str(val).strip() == ""


def pick(row: dict, keys: Iterable[str]) -> Any:
    """Return the first non-empty value among several header variants."""
    for key in keys:
        val = row.get(key)
        if not is_blank(val):
            return val
    return None


def clean_text(val: Any) -> str:
    return "" if is_blank(val) else str(val).strip()


# =============================================================================
# Numbers
# =============================================================================

def parse_locale_number(raw: Any) -> float:
    """
    Parse a Brazilian- or US-formatted number, tolerating currency markers.

    "1.234,56" → 1234.56, "1,234.56" → 1234.56, "R$ 50,00" → 50.0, "" → 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float, Decimal)):
        val = float(raw)
        return val if math.isfinite(val) else 0.0

    s = _CURRENCY_RE.sub("", str(raw))
    s = s.replace("\u00a0", "").replace(" ", "").strip()
    if not s:
        return 0.0

    if "," in s and "." in s:
        # Rightmost separator is the decimal point
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        # "1,234,567" can only be thousands; a single comma is the decimal point
        s = s.replace(",", "") if s.count(",") > 1 else s.replace(",", ".")

    try:
        val = float(s)
    except ValueError:
        return 0.0
    return val if math.isfinite(val) else 0.0


def parse_int_quantity(raw: Any) -> int:
    return int(parse_locale_number(raw))


# =============================================================================
# Dates
# =============================================================================

def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _from_excel_serial(serial: float) -> Optional[datetime]:
    if not (0 < serial < _EXCEL_MAX_SERIAL):
        return None
    return _EXCEL_EPOCH + timedelta(seconds=round(serial * 86400))


def _parse_dmy(match: re.Match) -> Optional[datetime]:
    dd, mm, yyyy, hh, mi, ss = match.groups()
    try:
        return datetime(
            int(yyyy), int(mm), int(dd),
            int(hh or 0), int(mi or 0), int(ss or 0),
        )
    except ValueError:
        return None


def parse_flexible_date(raw: Any) -> Optional[datetime]:
    """
    Parse a date cell from any of the channel exports.

    Accepts native date/datetime objects, Excel serial numbers, dd/mm/yyyy
    [hh:mm[:ss]] (always day first, never month first), ISO-8601 and a few
    fixed layouts. Returns None when nothing matches.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        if pd.isna(raw):
            return None
        return _to_naive_utc(raw)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min)
    if isinstance(raw, (int, float, Decimal)):
        val = float(raw)
        return _from_excel_serial(val) if math.isfinite(val) else None

    s = str(raw).strip()
    if not s:
        return None

    m = _DMY_RE.match(s)
    if m:
        return _parse_dmy(m)

    if _NUMERIC_RE.match(s):
        val = float(s)
        if _SERIAL_STR_RANGE[0] <= val < _SERIAL_STR_RANGE[1]:
            return _from_excel_serial(val)

    try:
        return _to_naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def parse_date_and_time(date_raw: Any, time_raw: Any) -> Optional[datetime]:
    """Combine separate date and time cells (e.g. "13/01/2026" + "14:05")."""
    base = parse_flexible_date(date_raw)
    if base is None or is_blank(time_raw):
        return base

    if isinstance(time_raw, time):
        return datetime.combine(base.date(), time_raw)
    if isinstance(time_raw, (int, float)) and 0 <= time_raw < 1:
        # Excel stores a bare time as a fraction of a day
        return datetime.combine(base.date(), time.min) + timedelta(seconds=round(time_raw * 86400))

    m = _TIME_RE.match(str(time_raw).strip())
    if not m:
        return base
    hh, mi, ss = m.groups()
    try:
        return datetime.combine(base.date(), time(int(hh), int(mi), int(ss or 0)))
    except ValueError:
        return base


def parse_date_only_as_noon(raw: Any) -> Optional[datetime]:
    """
    Parse a user-entered plain date (yyyy-mm-dd) anchored at 12:00 UTC.

    Midday keeps the calendar day stable when the value is rendered in a
    negative-offset timezone such as America/Sao_Paulo.
    """
    if is_blank(raw):
        return None
    if isinstance(raw, datetime):
        raw = raw.date()
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, 12, 0, 0)

    m = _YMD_RE.match(str(raw).strip())
    if not m:
        return None
    try:
        return datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)), 12, 0, 0)
    except ValueError:
        return None


# =============================================================================
# Month tokens
# =============================================================================

def parse_month(token: str) -> date:
    """'2026-01' → date(2026, 1, 1). Raises ValueError on malformed tokens."""
    m = _MONTH_RE.match(str(token or "").strip())
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise ValueError(f"Invalid month {token!r}: expected YYYY-MM")
    return date(int(m.group(1)), int(m.group(2)), 1)


def month_bounds(month_start: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) datetime range covering a calendar month."""
    start = datetime(month_start.year, month_start.month, 1)
    if month_start.month == 12:
        end = datetime(month_start.year + 1, 1, 1)
    else:
        end = datetime(month_start.year, month_start.month + 1, 1)
    return start, end


def month_key(dt: date) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"

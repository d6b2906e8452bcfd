"""
Reads an uploaded channel export into header-keyed row dicts.

  - Real format is detected by magic bytes: marketplaces sometimes save XLSX as .csv.
  - Every cell is read as a string so long numeric order ids keep all digits;
    empty cells become "".
  - CSV delimiter follows the channel's export convention (tray exports use ";")
    and falls back to sniffing when the expected delimiter yields one column.
  - Raises FileFormatError when the bytes are not a readable spreadsheet and
    ColumnMismatchError when none of the order-id headers is present.
"""

import csv
import io
import logging
import os

import pandas as pd

from ..constants import Channel
from ..errors import ColumnMismatchError, FileFormatError

logger = logging.getLogger(__name__)

_CSV_DELIMITERS: dict[Channel, str] = {
    Channel.TRAY: ";",
    Channel.SHOPEE: ",",
    Channel.TIKTOK: ",",
}

_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1")


def _read_excel(content: bytes, engine: str | None) -> pd.DataFrame:
    try:
        return pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=str, engine=engine)
    except Exception as exc:
        raise FileFormatError(f"Could not read spreadsheet: {exc}") from exc


def _read_csv(content: bytes, delimiter: str, filename: str) -> pd.DataFrame:
    for enc in _ENCODINGS:
        try:
            text = content.decode(enc)
        except UnicodeDecodeError:
            continue
        try:
            df = pd.read_csv(io.StringIO(text), sep=delimiter, dtype=str, keep_default_na=False)
            if len(df.columns) <= 1:
                sniffed = csv.Sniffer().sniff(text[:4096], delimiters=";,\t|").delimiter
                if sniffed != delimiter:
                    logger.debug("%s: expected %r delimiter, sniffed %r", filename, delimiter, sniffed)
                    df = pd.read_csv(io.StringIO(text), sep=sniffed, dtype=str, keep_default_na=False)
            return df
        except csv.Error:
            # Sniffer could not decide; keep the single-column frame
            return df
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise FileFormatError(f"Could not parse {filename} as CSV: {exc}") from exc
    raise FileFormatError(f"Could not decode {filename}: tried {', '.join(_ENCODINGS)}")


def read_frame(content: bytes, filename: str, channel: Channel) -> pd.DataFrame:
    if not content:
        raise FileFormatError(f"{filename} is empty")

    magic = content[:4]
    if magic[:2] == b"PK":            # ZIP container → xlsx
        df = _read_excel(content, "openpyxl")
    elif magic[:2] == b"\xd0\xcf":    # BIFF container → legacy xls
        df = _read_excel(content, "xlrd")
    elif os.path.splitext(filename)[1].lower() in (".xlsx", ".xls"):
        df = _read_excel(content, None)
    else:
        df = _read_csv(content, _CSV_DELIMITERS.get(Channel(channel), ","), filename)

    df.columns = [str(c).strip() for c in df.columns]
    return df.fillna("")


def read_rows(
    content: bytes,
    filename: str,
    channel: Channel,
    required_any: list[str] | None = None,
) -> list[dict]:
    """
    Return one dict per data row. When ``required_any`` is given, at least one of
    those headers must be present or ColumnMismatchError is raised.
    """
    df = read_frame(content, filename, channel)
    if required_any and not any(col in df.columns for col in required_any):
        raise ColumnMismatchError(
            missing=[" | ".join(required_any)],
            found=sorted(df.columns.tolist()),
            file_type=Channel(channel).value,
        )
    return df.to_dict("records")

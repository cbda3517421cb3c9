from __future__ import annotations

import io
import logging
import math
import zipfile
from datetime import date, datetime, timezone
from pathlib import PurePath

import pandas as pd

from curtailment_watch.errors import SchemaError
from curtailment_watch.models import FormatHint, NormalizedRow

LOGGER = logging.getLogger(__name__)

DATE_COLUMN = "date"
HOUR_ENDING_COLUMN = "he"
PRICE_COLUMN_CANDIDATES = ("forecast", "value")

TIMESTAMP_ALIASES = (
    "Timestamp",
    "Time",
    "IntervalStart",
    "Interval Start",
    "Start",
    "Hour",
    "DateTime",
    "ts",
    "time_utc",
)
PRICE_ALIASES = ("Price", "LMP", "LMP ($/MWh)", "Value", "forecast")

# OOXML workbooks only; legacy .xls would need xlrd.
SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
ZIP_MAGIC = b"PK\x03\x04"


def detect_format_hint(file_name: str | None, content: bytes = b"") -> FormatHint:
    suffix = PurePath(file_name or "").suffix.lower()
    if suffix in SPREADSHEET_SUFFIXES:
        return FormatHint.spreadsheet
    if content.startswith(ZIP_MAGIC):
        return FormatHint.spreadsheet
    return FormatHint.delimited


def _header_lookup(columns: list[object]) -> dict[str, object]:
    lookup: dict[str, object] = {}
    for column in columns:
        lookup.setdefault(str(column).strip().lower(), column)
    return lookup


def _match_alias(columns: list[object], aliases: tuple[str, ...]) -> object | None:
    wanted = {alias.lower() for alias in aliases}
    for column in columns:
        if str(column).strip().lower() in wanted:
            return column
    return None


def _parse_calendar_date(raw: str) -> date | None:
    text = raw.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        pass
    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _read_delimited(content: bytes) -> pd.DataFrame:
    try:
        # utf-8-sig strips the byte-order marker some portal exports prepend.
        frame = pd.read_csv(
            io.BytesIO(content),
            encoding="utf-8-sig",
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="skip",
            # Trailing delimiters must not promote the first column to the index.
            index_col=False,
        )
    except pd.errors.EmptyDataError as exc:
        raise SchemaError("Delimited artifact is empty; no header row found") from exc
    except (UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise SchemaError(f"Delimited artifact could not be parsed: {exc}") from exc
    return frame.fillna("")


def _normalize_delimited(content: bytes) -> list[NormalizedRow]:
    frame = _read_delimited(content)
    headers = [str(column).strip().lower() for column in frame.columns]
    lookup = _header_lookup(list(frame.columns))

    price_columns = [lookup[name] for name in PRICE_COLUMN_CANDIDATES if name in lookup]
    if DATE_COLUMN not in lookup or HOUR_ENDING_COLUMN not in lookup or not price_columns:
        raise SchemaError(
            f"CSV schema not recognized. Headers: {', '.join(headers)}",
            headers=headers,
        )

    hour_ending = pd.to_numeric(frame[lookup[HOUR_ENDING_COLUMN]].str.strip(), errors="coerce")
    price = pd.to_numeric(frame[price_columns[0]].str.strip(), errors="coerce")
    for fallback_column in price_columns[1:]:
        price = price.fillna(pd.to_numeric(frame[fallback_column].str.strip(), errors="coerce"))

    rows: list[NormalizedRow] = []
    skipped = 0
    for raw_date, he_value, price_value in zip(
        frame[lookup[DATE_COLUMN]], hour_ending, price
    ):
        calendar_date = _parse_calendar_date(str(raw_date))
        if (
            calendar_date is None
            or pd.isna(he_value)
            or pd.isna(price_value)
            or not float(he_value).is_integer()
            or not 1 <= int(he_value) <= 24
            or not math.isfinite(float(price_value))
        ):
            skipped += 1
            continue
        rows.append(
            NormalizedRow(
                calendar_date=calendar_date,
                hour_ending=int(he_value),
                price=float(price_value),
            )
        )
    if skipped:
        LOGGER.debug("Skipped %s malformed delimited rows", skipped)
    return rows


def _read_spreadsheet(content: bytes) -> pd.DataFrame:
    try:
        return pd.read_excel(io.BytesIO(content), sheet_name=0)
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as exc:
        raise SchemaError(f"Spreadsheet artifact could not be read: {exc}") from exc
    except ImportError as exc:
        raise SchemaError(f"Spreadsheet artifact needs a missing reader engine: {exc}") from exc


def _normalize_spreadsheet(content: bytes) -> list[NormalizedRow]:
    frame = _read_spreadsheet(content)
    columns = list(frame.columns)
    headers = [str(column).strip() for column in columns]

    timestamp_column = _match_alias(columns, TIMESTAMP_ALIASES)
    price_column = _match_alias(columns, PRICE_ALIASES)
    if timestamp_column is None or price_column is None:
        raise SchemaError(
            f"Spreadsheet schema not recognized. Headers: {', '.join(headers)}",
            headers=headers,
        )

    # Naive cells are taken as UTC; aware ones are converted.
    instants = pd.to_datetime(frame[timestamp_column], errors="coerce", utc=True, format="mixed")
    prices = pd.to_numeric(frame[price_column], errors="coerce")

    rows: list[NormalizedRow] = []
    skipped = 0
    for instant, price_value in zip(instants, prices):
        if pd.isna(instant) or pd.isna(price_value) or not math.isfinite(float(price_value)):
            skipped += 1
            continue
        explicit = instant.to_pydatetime().astimezone(timezone.utc)
        rows.append(
            NormalizedRow(
                calendar_date=explicit.date(),
                explicit_instant=explicit,
                price=float(price_value),
            )
        )
    if skipped:
        LOGGER.debug("Skipped %s malformed spreadsheet rows", skipped)
    return rows


def normalize(content: bytes, format_hint: FormatHint | str) -> list[NormalizedRow]:
    """Parse raw artifact bytes into header-indexed, validated rows."""
    hint = FormatHint(format_hint)
    if hint == FormatHint.spreadsheet:
        return _normalize_spreadsheet(content)
    return _normalize_delimited(content)

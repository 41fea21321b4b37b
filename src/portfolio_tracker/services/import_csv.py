"""CSV parsing for broker position exports and ratings scorecards.

Parsing is pure: functions return plain dataclasses and never touch the
database, so they can be unit tested on strings alone. Structural problems
raise :class:`ImportFormatError`; row-level problems are collected in
``errors`` and the row is skipped.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Optional

import pandas as pd

from ..domain.errors import ImportFormatError
from ..domain.symbols import normalize_symbol
from ..models import RISK_TAGS

SCHWAB_HEADER_PATTERN = re.compile(r"Positions for account (.+?) \.\.\.(\d+)")
SCHWAB_SKIP_SYMBOLS = {"Cash & Cash Investments", "Account Total"}
SCHWAB_MIN_LINES = 4

EMPTY_MARKERS = {"", "-", "--", "N/A"}

MOTLEY_FOOL_COLUMNS = {
    "rec_date": "Rec Date",
    "cost_basis": "Cost Basis",
    "quant_5y": "Quant: 5Y",
    "allocation": "Allocation",
    "est_low_return": "Est. Low Return",
    "est_high_return": "Est. High Return",
    "est_max_drawdown": "Est. Max Drawdown",
    "risk_tag": "cmaTagLabel",
    "times_recommended": "Times Rec'd",
    "fcf_growth_1y": "1Y FCF Growth",
    "gross_margin": "Gross Margin",
}


@dataclass
class ParsedPosition:
    symbol: str
    company_name: Optional[str]
    shares: float
    cost_basis: Optional[float] = None


@dataclass
class SchwabStatement:
    """Account identity plus the equity rows of one Schwab positions export."""

    account_name: str
    account_suffix: str
    positions: list[ParsedPosition] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ParsedRating:
    """One ratings row: descriptive symbol data plus the source's score fields."""

    symbol: str
    scores: dict[str, Any]
    company_name: Optional[str] = None
    sector: Optional[str] = None


@dataclass
class RatingsSheet:
    ratings: list[ParsedRating] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def clean_cell(value: Any) -> Optional[str]:
    """Stringify a cell; blanks and dash placeholders become None."""

    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return None if text in EMPTY_MARKERS else text


def parse_number(value: Any, *, strip: str = ",") -> Optional[float]:
    """Parse a formatted number, returning None for placeholders or garbage."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number
    text = clean_cell(value)
    if text is None:
        return None
    for char in strip:
        text = text.replace(char, "")
    try:
        number = float(text)
    except ValueError:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def parse_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    return None if number is None else int(number)


def parse_risk_tag(value: Any) -> Optional[str]:
    """Only the three published tags are kept; anything else is dropped silently."""

    text = clean_cell(value)
    return text if text in RISK_TAGS else None


def read_csv_frame(text: str) -> pd.DataFrame:
    """Read CSV text with every cell as a string and headers trimmed."""

    frame = pd.read_csv(
        StringIO(text),
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        skip_blank_lines=True,
        index_col=False,
    )
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame


def _first_present(record: dict[str, Any], *columns: str) -> Any:
    for column in columns:
        value = record.get(column)
        if clean_cell(value) is not None:
            return value
    return None


def parse_schwab_csv(csv_text: str) -> SchwabStatement:
    """Parse a Schwab "Positions for account" export."""

    lines = [line.strip() for line in csv_text.splitlines()]
    lines = [line for line in lines if line]
    if len(lines) < SCHWAB_MIN_LINES:
        raise ImportFormatError(
            "Invalid Schwab CSV format: file too short",
            ["File must have at least 4 lines (header, blank, column headers, data)"],
        )

    match = SCHWAB_HEADER_PATTERN.search(lines[0])
    if match is None:
        raise ImportFormatError(
            "Could not extract account name from header",
            ['Expected format: "Positions for account NAME ...SUFFIX"'],
        )

    statement = SchwabStatement(account_name=match.group(1).strip(), account_suffix=match.group(2))
    try:
        frame = read_csv_frame("\n".join(lines[1:]))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ImportFormatError("Could not parse Schwab position rows", [str(exc)]) from exc

    for record in frame.to_dict(orient="records"):
        raw_symbol = clean_cell(record.get("Symbol"))
        if not raw_symbol or raw_symbol in SCHWAB_SKIP_SYMBOLS or "Total" in raw_symbol:
            continue

        shares = parse_number(_first_present(record, "Qty (Quantity)", "Quantity"))
        if shares is None or shares <= 0:
            statement.errors.append(f"Skipped {raw_symbol}: invalid share quantity")
            continue

        cost_basis = parse_number(record.get("Cost Basis"), strip="$,")
        statement.positions.append(
            ParsedPosition(
                symbol=normalize_symbol(raw_symbol),
                company_name=clean_cell(record.get("Description")),
                shares=shares,
                cost_basis=cost_basis if cost_basis and cost_basis > 0 else None,
            )
        )
    return statement


def parse_motley_fool_csv(csv_text: str) -> RatingsSheet:
    """Parse a Motley Fool scorecard export (UTF-8, BOM tolerated)."""

    text = csv_text.lstrip("\ufeff")
    try:
        frame = read_csv_frame(text)
    except pd.errors.EmptyDataError as exc:
        raise ImportFormatError("CSV file is empty or has no data rows") from exc
    except pd.errors.ParserError as exc:
        raise ImportFormatError("Could not parse Motley Fool CSV", [str(exc)]) from exc

    if frame.empty:
        raise ImportFormatError("CSV file is empty or has no data rows")
    if "Symbol" not in frame.columns:
        raise ImportFormatError(
            "CSV file has no Symbol column",
            [f"Columns found: {', '.join(frame.columns)}"],
        )

    sheet = RatingsSheet()
    for record in frame.to_dict(orient="records"):
        raw_symbol = clean_cell(record.get("Symbol"))
        if raw_symbol is None:
            continue

        scores: dict[str, Any] = {}
        for name, column in MOTLEY_FOOL_COLUMNS.items():
            value = record.get(column)
            if name == "risk_tag":
                scores[name] = parse_risk_tag(value)
            elif name == "rec_date":
                scores[name] = clean_cell(value)
            elif name == "times_recommended":
                scores[name] = parse_int(value)
            elif name == "cost_basis":
                scores[name] = parse_number(value, strip="$,")
            else:
                scores[name] = parse_number(value, strip="%,")

        sheet.ratings.append(
            ParsedRating(
                symbol=normalize_symbol(raw_symbol),
                scores=scores,
                company_name=clean_cell(record.get("Company")),
                sector=clean_cell(record.get("Sector")),
            )
        )
    return sheet

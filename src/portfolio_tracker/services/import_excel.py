"""Seeking Alpha ratings spreadsheet parsing."""

from __future__ import annotations

from io import BytesIO
from typing import Any

import pandas as pd

from ..domain.errors import ImportFormatError
from ..domain.symbols import normalize_symbol
from .import_csv import ParsedRating, RatingsSheet, clean_cell, parse_number

RATINGS_SHEET = "ratings"

# Column order of the export; row 0 is a header and is ignored.
SEEKING_ALPHA_COLUMNS = (
    "symbol",
    "quant_score",
    "sa_analyst_score",
    "wall_st_score",
    "valuation_grade",
    "growth_grade",
    "profitability_grade",
    "momentum_grade",
    "eps_revision_grade",
)
SCORE_COLUMNS = {"quant_score", "sa_analyst_score", "wall_st_score"}


def _cell(row: list[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def parse_seeking_alpha_excel(file_bytes: bytes) -> RatingsSheet:
    try:
        workbook = pd.ExcelFile(BytesIO(file_bytes))
    except Exception as exc:  # openpyxl/zipfile raise a variety of types for bad input
        raise ImportFormatError(
            "Failed to parse Excel file",
            [
                str(exc),
                "The file may contain non-standard formatting.",
                "Please try re-exporting from Seeking Alpha or use a different export format.",
            ],
        ) from exc

    with workbook:
        sheet_name = next(
            (name for name in workbook.sheet_names if str(name).strip().lower() == RATINGS_SHEET),
            None,
        )
        if sheet_name is None:
            raise ImportFormatError(
                'Could not find "Ratings" sheet in Excel file',
                [f"Available sheets: {', '.join(str(name) for name in workbook.sheet_names)}"],
            )
        frame = workbook.parse(sheet_name, header=None, dtype=object)

    rows = frame.values.tolist()
    if len(rows) < 2:
        raise ImportFormatError("Ratings sheet is empty or has no data rows")

    sheet = RatingsSheet()
    for row in rows[1:]:
        raw_symbol = clean_cell(_cell(row, 0))
        if raw_symbol is None:
            continue
        scores: dict[str, Any] = {}
        for index, name in enumerate(SEEKING_ALPHA_COLUMNS[1:], start=1):
            value = _cell(row, index)
            scores[name] = parse_number(value) if name in SCORE_COLUMNS else clean_cell(value)
        sheet.ratings.append(ParsedRating(symbol=normalize_symbol(raw_symbol), scores=scores))
    return sheet

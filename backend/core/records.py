"""
records.py - Assessment-result record coercion and validation.

Handles:
- Fuzzy field name mapping (snake_case, camelCase, original Portuguese columns,
  mixed freely across rows)
- Coercion to a canonical DataFrame (missing, non-numeric or infinite year/value -> 0)
- Data-quality issue reporting
"""

from typing import Any, Dict, List

import numpy as np
import pandas as pd

# Common field name variations for auto-mapping
RECORD_ALIASES = {
    "id": ["id", "result_id", "resultado_id"],
    "school_id": [
        "school_id", "schoolid", "school id", "escola_id", "escola",
    ],
    "assessment_name": [
        "assessment_name", "assessmentname", "assessment name", "assessment",
        "avaliacao", "avaliação", "exam_name", "exam",
    ],
    "grade_label": [
        "grade_label", "gradelabel", "grade label", "grade", "serie", "série",
        "series", "class",
    ],
    "subject": [
        "subject", "subject_name", "disciplina", "course",
    ],
    "year": [
        "year", "ano", "academic_year",
    ],
    "value": [
        "value", "valor_indice", "valor", "score", "index_value", "indice",
    ],
}

TEXT_FIELDS = ("assessment_name", "grade_label", "subject")
CANONICAL_COLUMNS = ["id", "school_id", "assessment_name", "grade_label", "subject", "year", "value"]


def _find_cols(df: pd.DataFrame, aliases: List[str]) -> List[str]:
    """All columns matching any alias, in alias order."""
    cols_lower = {str(c).lower().strip(): c for c in df.columns}
    found: List[str] = []
    for a in aliases:
        col = cols_lower.get(a.lower())
        if col is not None and col not in found:
            found.append(col)
    return found


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def _as_text(val: Any) -> str:
    return "" if _is_missing(val) else str(val)


def _raw_frame(records: List[Dict[str, Any]]) -> pd.DataFrame:
    # object dtype keeps ids exactly as given (no int -> float promotion)
    return pd.DataFrame(list(records or []), dtype=object)


def _merged_column(raw: pd.DataFrame, field: str) -> pd.Series:
    """
    One column per canonical field. A snapshot may mix naming styles across
    rows, so every matching alias column is merged: first non-missing wins.
    """
    cols = _find_cols(raw, RECORD_ALIASES[field])
    if not cols:
        return pd.Series([None] * len(raw), index=raw.index, dtype=object)
    merged = raw[cols[0]].copy()
    for col in cols[1:]:
        gaps = merged.isna()
        merged[gaps] = raw.loc[gaps, col]
    return merged


def _to_number(series: pd.Series) -> pd.Series:
    """Numeric coercion; text, missing and +/-inf all become NaN."""
    return pd.to_numeric(series, errors="coerce").astype(float).replace([np.inf, -np.inf], np.nan)


def records_to_frame(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Coerce raw result records into a DataFrame with canonical columns.

    Missing, non-numeric or infinite years and values become 0 so a chart
    renders with gaps rather than failing. Row order is the input order.
    """
    raw = _raw_frame(records).reset_index(drop=True)
    df = pd.DataFrame(index=range(len(raw)))

    for field in CANONICAL_COLUMNS:
        df[field] = _merged_column(raw, field)

    for field in ("id", "school_id"):
        df[field] = pd.Series(
            [None if _is_missing(v) else v for v in df[field]],
            index=df.index, dtype=object,
        )

    for field in TEXT_FIELDS:
        df[field] = df[field].map(_as_text)

    df["year"] = _to_number(df["year"]).fillna(0).astype(int)
    df["value"] = _to_number(df["value"]).fillna(0.0)
    return df


def validate_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate raw result records and return a list of data-quality issues.
    Nothing is rejected; issues only describe what will be defaulted.
    """
    issues: List[Dict[str, Any]] = []
    raw = _raw_frame(records).reset_index(drop=True)

    if len(raw) == 0:
        issues.append({
            "type": "empty_data",
            "severity": "critical",
            "message": "No assessment results available to chart.",
        })
        return issues

    for field in ("assessment_name", "year", "value"):
        if not _find_cols(raw, RECORD_ALIASES[field]):
            issues.append({
                "type": "missing_column",
                "severity": "critical",
                "message": f"Required field '{field}' not found. "
                           f"Expected one of: {RECORD_ALIASES[field]}",
            })

    raw_values = _merged_column(raw, "value")
    values = _to_number(raw_values)
    missing_count = int(raw_values.isna().sum())
    invalid_count = int(values.isna().sum()) - missing_count
    if invalid_count > 0:
        issues.append({
            "type": "invalid_values",
            "severity": "warning",
            "message": f"{invalid_count} values could not be parsed as finite numbers and will count as 0.",
        })
    if missing_count > 0 and _find_cols(raw, RECORD_ALIASES["value"]):
        issues.append({
            "type": "missing_values",
            "severity": "warning",
            "message": f"{missing_count} results have no value and will count as 0.",
        })
    if (values.dropna() < 0).any():
        issues.append({
            "type": "negative_values",
            "severity": "warning",
            "message": "Some values are negative - they will be clamped to 0 on charts.",
        })

    if _find_cols(raw, RECORD_ALIASES["year"]):
        bad_years = int(_to_number(_merged_column(raw, "year")).isna().sum())
        if bad_years > 0:
            issues.append({
                "type": "missing_years",
                "severity": "warning",
                "message": f"{bad_years} results have no usable year and will be placed at year 0.",
            })

    return issues

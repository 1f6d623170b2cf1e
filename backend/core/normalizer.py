"""
normalizer.py - Canonical grouping keys for free-text result labels.

Assessment name, grade label and subject are typed by hand, so
"5º Ano", "5o ano" and "  5º ANO " must land in the same group, as must
"Português" and "portugues".
"""

import re
import unicodedata
from typing import Any

import pandas as pd

# Ordinal indicators folded to plain letters before accent stripping.
ORDINAL_MAP = str.maketrans({"º": "o", "°": "o", "ª": "a"})

# ASCII unit separator: never survives normalization, so fields cannot bleed.
KEY_SEPARATOR = "\x1f"


def _clean_input(text: Any) -> str:
    if text is None:
        return ""
    try:
        if pd.isna(text):
            return ""
    except (TypeError, ValueError):
        pass
    return str(text)


def normalize_text(text: Any, strict: bool = False) -> str:
    """
    Normalize a label for grouping.

    Lenient policy collapses whitespace runs to one space; strict policy
    drops every non-alphanumeric character.
    """
    s = _clean_input(text).strip().lower()
    s = s.translate(ORDINAL_MAP)
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    if strict:
        return re.sub(r"[^0-9a-z]", "", s)
    return re.sub(r"\s+", " ", s).strip()


def build_key(assessment_name: Any, grade_label: Any, subject: Any, strict: bool = False) -> str:
    """Composite key: the three normalized fields joined by KEY_SEPARATOR."""
    return KEY_SEPARATOR.join(
        normalize_text(part, strict=strict)
        for part in (assessment_name, grade_label, subject)
    )


def display_title(assessment_name: Any, grade_label: Any, subject: Any) -> str:
    """Human-readable group title, e.g. 'IDEB - 5º Ano - Português'."""
    parts = [_clean_input(p).strip() for p in (assessment_name, grade_label, subject)]
    return " - ".join(p for p in parts if p)

"""
Tests for core/series.py and core/records.py - grouping, ordering, scaling.
"""

import copy
import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.records import records_to_frame, validate_records
from core.series import build_series


@pytest.fixture
def school_records():
    """Mixed results for one school, deliberately out of order."""
    return [
        {"id": 1, "school_id": 7, "assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Português", "year": 2023, "value": 6.8},
        {"id": 2, "school_id": 7, "assessment_name": "SAEB", "grade_label": "9º Ano", "subject": "Matemática", "year": 2021, "value": 262.4},
        {"id": 3, "school_id": 7, "assessment_name": "ideb", "grade_label": "5o ano", "subject": "portugues", "year": 2021, "value": 5.9},
        {"id": 4, "school_id": 7, "assessment_name": "IDEPE", "grade_label": "9º Ano", "subject": "Geral", "year": 2019, "value": 580},
        {"id": 5, "school_id": 7, "assessment_name": "IDEPE", "grade_label": "9º Ano", "subject": "Geral", "year": 2021, "value": 75},
        {"id": 6, "school_id": 7, "assessment_name": "IDEPE", "grade_label": "9º Ano", "subject": "Geral", "year": 2023, "value": 92},
        {"id": 7, "school_id": 7, "assessment_name": "SAEB", "grade_label": "9º Ano", "subject": "Matemática", "year": 2023, "value": 640},
    ]


class TestBuildSeries:
    """Tests for build_series."""

    def test_groups_in_first_seen_order(self, school_records):
        groups = build_series(school_records)
        assert [g["display_title"] for g in groups] == [
            "IDEB - 5º Ano - Português",
            "SAEB - 9º Ano - Matemática",
            "IDEPE - 9º Ano - Geral",
        ]

    def test_equivalent_labels_merge(self, school_records):
        ideb = build_series(school_records)[0]
        assert [p["id"] for p in ideb["points"]] == [3, 1]

    def test_points_sorted_by_year(self, school_records):
        for group in build_series(school_records):
            years = [p["year"] for p in group["points"]]
            assert years == sorted(years)

    def test_index_group_rescaled(self, school_records):
        idepe = build_series(school_records)[2]
        assert idepe["divisor"] == 100
        assert idepe["max_scale"] == 10
        assert [p["scaled_value"] for p in idepe["points"]] == pytest.approx([5.8, 0.75, 0.92])
        assert [p["raw_value"] for p in idepe["points"]] == [580, 75, 92]

    def test_raw_score_group_clamped(self, school_records):
        saeb = build_series(school_records)[1]
        assert saeb["max_scale"] == 500
        assert saeb["divisor"] == 1
        assert [p["scaled_value"] for p in saeb["points"]] == pytest.approx([262.4, 500])
        assert saeb["points"][1]["raw_value"] == 640

    def test_clamping_invariant(self, school_records):
        for group in build_series(school_records):
            for p in group["points"]:
                assert 0 <= p["scaled_value"] <= p["max_scale"]

    def test_deterministic(self, school_records):
        first = build_series(copy.deepcopy(school_records))
        second = build_series(copy.deepcopy(school_records))
        assert first == second

    def test_year_ties_keep_input_order(self):
        records = [
            {"id": "b", "assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2021, "value": 200},
            {"id": "a", "assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2021, "value": 210},
            {"id": "c", "assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2019, "value": 190},
        ]
        points = build_series(records)[0]["points"]
        assert [p["id"] for p in points] == ["c", "b", "a"]

    def test_empty_input(self):
        assert build_series([]) == []

    def test_end_to_end_ideb(self):
        records = [
            {"year": 2023, "value": 6.8, "assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Português"},
            {"year": 2022, "value": 6.1, "assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Português"},
        ]
        groups = build_series(records)
        assert len(groups) == 1
        group = groups[0]
        assert [p["year"] for p in group["points"]] == [2022, 2023]
        assert group["max_scale"] == 10
        assert group["divisor"] == 1


class TestRecordCoercion:
    """Tests for records_to_frame and validate_records."""

    def test_portuguese_columns_mapped(self):
        df = records_to_frame([
            {"escola_id": 1, "avaliacao": "SAEB", "serie": "5º Ano", "disciplina": "Português", "ano": "2021", "valor_indice": "210.5"},
        ])
        row = df.iloc[0]
        assert row["assessment_name"] == "SAEB"
        assert row["grade_label"] == "5º Ano"
        assert row["subject"] == "Português"
        assert row["year"] == 2021
        assert row["value"] == pytest.approx(210.5)

    def test_camel_case_columns_mapped(self):
        df = records_to_frame([
            {"schoolId": 3, "assessmentName": "IDEB", "gradeLabel": "9º Ano", "subject": "Geral", "year": 2023, "value": 4.9},
        ])
        assert df.iloc[0]["assessment_name"] == "IDEB"
        assert df.iloc[0]["grade_label"] == "9º Ano"
        assert df.iloc[0]["school_id"] == 3

    def test_missing_year_and_value_default_to_zero(self):
        df = records_to_frame([
            {"assessment_name": "SAEB", "year": None, "value": "abc"},
        ])
        assert df.iloc[0]["year"] == 0
        assert df.iloc[0]["value"] == 0.0
        assert df.iloc[0]["subject"] == ""

    def test_validate_reports_defaults(self):
        issues = validate_records([
            {"assessment_name": "SAEB", "year": None, "value": "abc"},
            {"assessment_name": "SAEB", "year": 2021, "value": -4},
        ])
        types = {i["type"] for i in issues}
        assert {"invalid_values", "negative_values", "missing_years"} <= types

    def test_validate_empty(self):
        issues = validate_records([])
        assert issues[0]["type"] == "empty_data"
        assert issues[0]["severity"] == "critical"

    def test_validate_missing_column(self):
        issues = validate_records([{"assessment_name": "SAEB", "year": 2021}])
        assert any(i["type"] == "missing_column" and "value" in i["message"] for i in issues)

    def test_infinite_values_default_to_zero(self):
        df = records_to_frame([
            {"assessment_name": "IDEB", "year": 2021, "value": "inf"},
            {"assessment_name": "IDEB", "year": 2022, "value": float("-inf")},
            {"assessment_name": "IDEB", "year": float("inf"), "value": 5.5},
        ])
        assert df["value"].tolist() == [0.0, 0.0, 5.5]
        assert df["year"].tolist() == [2021, 2022, 0]

    def test_infinite_values_flagged(self):
        issues = validate_records([{"assessment_name": "IDEB", "year": 2021, "value": "inf"}])
        assert any(i["type"] == "invalid_values" for i in issues)

    def test_mixed_naming_styles_merged(self):
        df = records_to_frame([
            {"assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Português", "year": 2022, "value": 6.1},
            {"assessmentName": "IDEB", "gradeLabel": "5º Ano", "subject": "Português", "year": 2023, "value": 6.8},
            {"avaliacao": "IDEB", "serie": "5º Ano", "disciplina": "Português", "ano": 2024, "valor_indice": 7.0},
        ])
        assert df["assessment_name"].tolist() == ["IDEB", "IDEB", "IDEB"]
        assert df["grade_label"].tolist() == ["5º Ano", "5º Ano", "5º Ano"]
        assert df["subject"].tolist() == ["Português", "Português", "Português"]
        assert df["year"].tolist() == [2022, 2023, 2024]
        assert df["value"].tolist() == pytest.approx([6.1, 6.8, 7.0])


class TestOpaqueIdsAndMessyInput:
    """build_series on snapshots with partial ids, odd values and mixed field names."""

    def test_ids_returned_unchanged_when_some_missing(self):
        records = [
            {"id": 7, "assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2021, "value": 200},
            {"assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2022, "value": 210},
            {"id": "r-9", "assessment_name": "SAEB", "grade_label": "5º Ano", "subject": "Mat", "year": 2023, "value": 220},
        ]
        ids = [p["id"] for p in build_series(records)[0]["points"]]
        assert ids == [7, None, "r-9"]
        assert type(ids[0]) is int

    def test_infinite_value_charts_as_zero(self):
        records = [{"id": 1, "assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Geral", "year": 2021, "value": "inf"}]
        point = build_series(records)[0]["points"][0]
        assert point["raw_value"] == 0.0
        assert point["scaled_value"] == 0.0

    def test_mixed_naming_styles_form_one_group(self):
        records = [
            {"assessment_name": "IDEB", "grade_label": "5º Ano", "subject": "Português", "year": 2022, "value": 6.1},
            {"assessmentName": "IDEB", "gradeLabel": "5º Ano", "subject": "Português", "year": 2023, "value": 6.8},
        ]
        groups = build_series(records)
        assert len(groups) == 1
        assert groups[0]["display_title"] == "IDEB - 5º Ano - Português"
        assert [p["year"] for p in groups[0]["points"]] == [2022, 2023]

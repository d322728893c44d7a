import logging
from datetime import datetime, timedelta

import pandas as pd
import pytest

from core.config import Settings
from core.importer import (
    COLUMNS,
    ImportRowError,
    build_document,
    coerce_score,
    compute_duration_ms,
    import_rows,
    manual_parse,
    map_version,
    parse_timestamp,
    read_rows,
    run_import,
)
from core.records import is_valid, normalize_document

NOW = datetime(2025, 11, 10, 9, 30)


def _row(**values):
    row = {header: None for header in COLUMNS.values()}
    for key, value in values.items():
        row[COLUMNS[key]] = value
    return row


@pytest.fixture
def complete_row():
    return _row(
        version="优化版",
        start_time="2025/11/3 14:15",
        end_time="2025/11/3 14:27",
        confirmation_code="  ABC123 ",
        mental_demand="40",
        physical_demand="10",
        temporal_demand="35",
        performance="80",
        effort="45",
        frustration="20",
    )


class TestMapVersion:
    def test_chinese_labels(self):
        assert map_version("对照版") == "feature"
        assert map_version("优化版") == "optimized"

    def test_english_labels_are_trimmed(self):
        assert map_version(" optimized ") == "optimized"
        assert map_version("feature") == "feature"

    def test_unknown_label_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="core.importer"):
            assert map_version("v3") == "feature"
        assert "unknown version label" in caplog.text

    def test_unknown_label_strict(self):
        with pytest.raises(ImportRowError):
            map_version("v3", strict=True)


class TestTimestamps:
    def test_manual_parse_two_digit_year(self):
        assert manual_parse("25/11/3 14:15") == datetime(2025, 11, 3, 14, 15)

    def test_manual_parse_date_only(self):
        assert manual_parse("2025/11/3") == datetime(2025, 11, 3)

    def test_manual_parse_rejects_short_input(self):
        with pytest.raises(ValueError):
            manual_parse("2025/11")

    def test_two_digit_year_is_year_first(self):
        assert parse_timestamp("25/11/3 14:15", now=NOW) == datetime(2025, 11, 3, 14, 15)
        assert parse_timestamp("2025/11/3", now=NOW) == datetime(2025, 11, 3)

    def test_native_formats(self):
        assert parse_timestamp("2025/11/3 14:18", now=NOW) == datetime(2025, 11, 3, 14, 18)
        assert parse_timestamp("2025-11-03 14:18:00", now=NOW) == datetime(2025, 11, 3, 14, 18)

    def test_datetime_passthrough(self):
        value = datetime(2025, 1, 2, 3, 4)
        assert parse_timestamp(value, now=NOW) is value

    @pytest.mark.parametrize("value", ["not a date", None, 12345])
    def test_unparseable_uses_now(self, value):
        assert parse_timestamp(value, now=NOW) == NOW

    def test_unparseable_strict(self):
        with pytest.raises(ImportRowError):
            parse_timestamp("not a date", now=NOW, strict=True)


class TestDurationAndScores:
    def test_minutes_column_wins(self):
        start = datetime(2025, 11, 3, 14, 0)
        assert compute_duration_ms("12.5", start, start + timedelta(minutes=1)) == 750000

    def test_minutes_with_unit_suffix(self):
        start = datetime(2025, 11, 3, 14, 0)
        assert compute_duration_ms("12分", start, start + timedelta(minutes=1)) == 720000
        assert compute_duration_ms(" 7.5 min", start, start) == 450000

    def test_falls_back_to_timestamps(self):
        start = datetime(2025, 11, 3, 14, 0)
        end = start + timedelta(minutes=5)
        assert compute_duration_ms(None, start, end) == 300000
        assert compute_duration_ms("abc", start, end) == 300000
        assert compute_duration_ms("  ", start, end) == 300000

    @pytest.mark.parametrize(
        "value,expected",
        [("7", 7.0), ("7.5分", 7.5), (" -3 ", -3.0), ("", 0.0), ("abc", 0.0), (None, 0.0), (12, 12.0)],
    )
    def test_coerce_score(self, value, expected):
        assert coerce_score(value) == expected


class TestBuildDocuments:
    def test_build_document(self, complete_row):
        doc = build_document(complete_row, now=NOW)
        assert doc["version"] == "optimized"
        assert doc["startTime"] == datetime(2025, 11, 3, 14, 15)
        assert doc["duration"] == 12 * 60 * 1000
        assert doc["confirmationCode"] == "ABC123"
        assert doc["nasatlx"]["mentalDemand"] == 40.0
        assert doc["nasatlx"]["frustration"] == 20.0
        assert doc["createdAt"] == NOW
        assert is_valid(normalize_document(doc))

    def test_short_year_rows(self, complete_row):
        complete_row[COLUMNS["start_time"]] = "25/11/3 14:15"
        complete_row[COLUMNS["end_time"]] = "25/11/3 14:27"
        doc = build_document(complete_row, now=NOW)
        assert doc["startTime"] == datetime(2025, 11, 3, 14, 15)
        assert doc["endTime"] == datetime(2025, 11, 3, 14, 27)
        assert doc["duration"] == 12 * 60 * 1000

    def test_rows_missing_required_fields_are_skipped(self, complete_row):
        rows = [
            complete_row,
            _row(version="对照版", start_time="2025/11/3 14:15"),
            _row(start_time="2025/11/3 14:15", end_time="2025/11/3 14:20"),
            _row(version="对照版", start_time="", end_time="2025/11/3 14:20"),
            _row(version="   ", start_time="2025/11/3 14:15", end_time="2025/11/3 14:20"),
        ]
        docs = import_rows(rows, now=NOW)
        assert len(docs) == 1
        assert docs[0]["version"] == "optimized"

    def test_missing_scores_default_to_zero(self):
        row = _row(version="对照版", start_time="2025/11/3 14:00", end_time="2025/11/3 14:10")
        doc = import_rows([row], now=NOW)[0]
        assert doc["version"] == "feature"
        assert set(doc["nasatlx"].values()) == {0.0}


class TestReadAndRun:
    @pytest.fixture
    def workbook(self, tmp_path):
        df = pd.DataFrame(
            [
                {
                    COLUMNS["version"]: "优化版",
                    COLUMNS["start_time"]: "2025/11/3 14:15",
                    COLUMNS["end_time"]: "2025/11/3 14:25",
                    COLUMNS["minutes"]: None,
                    COLUMNS["confirmation_code"]: "X1",
                    COLUMNS["mental_demand"]: 40,
                    COLUMNS["physical_demand"]: 10,
                    COLUMNS["temporal_demand"]: 30,
                    COLUMNS["performance"]: 70,
                    COLUMNS["effort"]: 50,
                    COLUMNS["frustration"]: 15,
                },
                {
                    COLUMNS["version"]: "对照版",
                    COLUMNS["start_time"]: "2025/11/3 15:00",
                    COLUMNS["end_time"]: "2025/11/3 15:20",
                    COLUMNS["minutes"]: "18",
                    COLUMNS["confirmation_code"]: None,
                    COLUMNS["mental_demand"]: 60,
                    COLUMNS["physical_demand"]: 20,
                    COLUMNS["temporal_demand"]: 50,
                    COLUMNS["performance"]: 60,
                    COLUMNS["effort"]: 70,
                    COLUMNS["frustration"]: 40,
                },
            ]
        )
        path = tmp_path / "results.xlsx"
        df.to_excel(path, index=False)
        return path

    def test_read_rows(self, workbook):
        rows = read_rows(workbook)
        assert len(rows) == 2
        assert rows[0][COLUMNS["version"]] == "优化版"
        assert rows[0][COLUMNS["mental_demand"]] == "40"
        assert rows[0][COLUMNS["minutes"]] is None
        assert rows[1][COLUMNS["confirmation_code"]] is None

    def test_read_rows_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_rows(tmp_path / "nope.xlsx")

    def test_run_import_inserts_one_batch(self, workbook, fake_collection):
        count = run_import(Settings(), path=workbook, collection=fake_collection)
        assert count == 2
        assert len(fake_collection.docs) == 2
        feature = [d for d in fake_collection.docs if d["version"] == "feature"][0]
        assert feature["duration"] == 18 * 60 * 1000
        assert feature["confirmationCode"] == ""

    def test_dry_run_writes_nothing(self, workbook, fake_collection):
        assert run_import(Settings(), path=workbook, dry_run=True, collection=fake_collection) == 2
        assert fake_collection.docs == []

"""
Fix Log Parser Tests
====================
"""

import json

import pytest

from jt.parsers.fixes import iter_fixes, load_fixes
from jt.utils.validate import FixRecord, coerce_fix
from jt.tracking.types import RawFix


@pytest.fixture
def csv_log(tmp_path):
    p = tmp_path / "fixes.csv"
    p.write_text(
        "ts,lat,lon,accuracy,speed,channel\n"
        "1000,41.0,29.0,8.5,,\n"
        "6000,41.0005,29.0,,1.2,background\n"
        "oops,41.0,29.0,,,\n"
        "7000,95.0,29.0,,,\n"
        "8000,41.001,29.0,4,-1,FOREGROUND\n",
        encoding="utf-8",
    )
    return p


class TestCsv:
    def test_loads_valid_rows_and_counts_skipped(self, csv_log):
        records, skipped = load_fixes(csv_log)
        assert skipped == 2
        assert [r.ts for r in records] == [1000, 6000, 8000]

    def test_blank_optional_columns_are_missing(self, csv_log):
        first = load_fixes(csv_log)[0][0]
        assert first.accuracy == 8.5
        assert first.speed is None
        assert first.channel == "foreground"

    def test_channel_is_normalized(self, csv_log):
        records, _ = load_fixes(csv_log)
        assert [r.channel for r in records] == ["foreground", "background", "foreground"]

    def test_iter_fixes_is_lazy_and_skips_bad_rows(self, csv_log):
        it = iter_fixes(csv_log)
        assert next(it).ts == 1000
        assert len(list(it)) == 2

    def test_long_column_names(self, tmp_path):
        p = tmp_path / "long.csv"
        p.write_text("timestamp,latitude,longitude\n1,2.0,3.0\n", encoding="utf-8")
        (rec,), _ = load_fixes(p)
        assert (rec.ts, rec.lat, rec.lon) == (1, 2.0, 3.0)


class TestJsonLines:
    def test_jsonl(self, tmp_path):
        p = tmp_path / "fixes.jsonl"
        rows = [
            {"timestamp": 1000.0, "latitude": 1.0, "longitude": 2.0, "accuracy": 3.0},
            "not json",
            {"ts": 2000, "lat": 1.001, "lon": 2.0, "channel": "background"},
            [1, 2, 3],
        ]
        p.write_text(
            "\n".join(r if isinstance(r, str) else json.dumps(r) for r in rows) + "\n\n",
            encoding="utf-8",
        )
        records, skipped = load_fixes(p)
        assert skipped == 2
        assert records[0].ts == 1000
        assert records[1].channel == "background"


class TestFixRecord:
    def test_to_raw_fix(self):
        rec = FixRecord.model_validate({"ts": 5, "lat": 1.0, "lon": 2.0, "speed": 3.0})
        assert rec.to_raw_fix() == RawFix(1.0, 2.0, 5, None, 3.0)

    def test_rejects_unknown_channel(self):
        assert coerce_fix({"ts": 5, "lat": 1.0, "lon": 2.0}) is not None
        with pytest.raises(ValueError):
            FixRecord.model_validate({"ts": 5, "lat": 1.0, "lon": 2.0, "channel": "radio"})

    def test_coerce_rejects_infinite_accuracy(self):
        assert coerce_fix({"ts": 5, "lat": 1.0, "lon": 2.0, "accuracy": float("inf")}) is None

    def test_coerce_passes_raw_fix_through(self):
        f = RawFix(1.0, 2.0, 3, 4.0, 5.0)
        assert coerce_fix(f) == f

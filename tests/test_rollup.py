"""Tests for manager, company and time-series statistics."""

from call_analytics.filters import DateWindow, build_date_filter
from call_analytics.rollup import (
    build_audio_stats,
    build_company_summary,
    build_manager_history,
    build_manager_stats,
    build_volume_series,
    completed_records,
)


class TestCompletedRecords:
    def test_in_flight_calls_are_excluded(self, call_records):
        selected = completed_records(call_records, DateWindow())

        assert [record.audio_file_id for record in selected] == [1, 2, 3]


class TestBuildManagerStats:
    def test_one_entry_per_manager(self, call_records, catalog):
        entries = build_manager_stats(call_records, catalog, DateWindow())

        assert [(entry["id"], entry["name"]) for entry in entries] == [
            (10, "Anna"),
            (20, "Boris"),
        ]
        anna, boris = entries
        assert anna["total_audios"] == 2
        assert anna["average_score"] == 60
        assert anna["talk_ratio"] == {"manager": 70, "customer": 30}
        assert boris["total_audios"] == 1
        assert boris["category_scores"] == {"Support": 90}
        assert boris["criteria_scores"]["Support"] == {"Empathy": 90}

    def test_date_window_limits_calls(self, call_records, catalog, today):
        window = build_date_filter("today", today=today)

        entries = build_manager_stats(call_records, catalog, window)

        assert len(entries) == 1
        assert entries[0]["name"] == "Anna"
        assert entries[0]["total_audios"] == 1

    def test_no_calls(self, catalog):
        assert build_manager_stats([], catalog, DateWindow()) == []


class TestBuildCompanySummary:
    def test_pools_calls_of_all_managers(self, call_records, catalog):
        summary = build_company_summary(call_records, catalog, DateWindow())

        assert summary["total_managers"] == 2
        assert summary["total_audios"] == 3
        # (70 + 50 + 90) / 3, not the mean of manager averages (60 and 90)
        assert summary["average_score"] == 70
        assert summary["category_counts"] == {"Sales": 2, "Support": 1}
        assert [manager["name"] for manager in summary["managers"]] == ["Anna", "Boris"]


class TestBuildVolumeSeries:
    def test_counts_per_day_and_manager(self, call_records):
        series = build_volume_series(call_records, DateWindow())

        assert series == [
            {"date": "2024-05-18", "count": 1, "Anna": 1},
            {"date": "2024-05-19", "count": 1, "Boris": 1},
            {"date": "2024-05-20", "count": 1, "Anna": 1},
        ]

    def test_restricts_to_requested_managers(self, call_records):
        series = build_volume_series(call_records, DateWindow(), ["20"])

        assert series == [{"date": "2024-05-19", "count": 1, "Boris": 1}]

    def test_respects_window(self, call_records, today):
        window = build_date_filter("custom", "2024-05-19", "2024-05-19", today=today)

        series = build_volume_series(call_records, window)

        assert [point["date"] for point in series] == ["2024-05-19"]


class TestBuildManagerHistory:
    def test_scores_per_day(self, call_records):
        history = build_manager_history(call_records, "10", DateWindow())

        assert history == [
            {"upload_date": "2024-05-18", "overall_score": 50},
            {"upload_date": "2024-05-20", "overall_score": 70},
        ]

    def test_unknown_manager(self, call_records):
        assert build_manager_history(call_records, 99, DateWindow()) == []


class TestBuildAudioStats:
    def test_single_call(self, call_records, catalog):
        stats = build_audio_stats(call_records[0], catalog)

        assert stats["file"]["id"] == 1
        assert stats["file"]["manager_name"] == "Anna"
        assert stats["overall_score"] == 70
        assert stats["criteria_scores"] == {"Greeting": 80, "Closing": 60}
        assert stats["category_mistakes"]["Sales"]["No greeting"]["count"] == 2
        assert stats["client_complaints"]["price"]["count"] == 2
        assert stats["talk_ratio"] == {"manager": 70, "customer": 30}
        assert stats["duration"] == 10

    def test_call_without_transcript(self, call_records, catalog):
        stats = build_audio_stats(call_records[1], catalog)

        assert stats["talk_ratio"] is None
        assert stats["duration"] is None

    def test_call_without_analysis(self, call_records, catalog):
        assert build_audio_stats(call_records[3], catalog) is None

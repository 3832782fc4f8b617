"""Shared fixtures for call analytics tests."""

import json
from datetime import date

import pytest

from call_analytics.models import AnalysisRow, CallRecord, CategoryCatalog


@pytest.fixture
def today() -> date:
    return date(2024, 5, 20)


@pytest.fixture
def catalog() -> CategoryCatalog:
    return CategoryCatalog.from_dict(
        data=[
            {"name": "Sales", "criteria": ["Greeting", "Closing"]},
            {"name": "Support", "criteria": ["Empathy"]},
        ]
    )


@pytest.fixture
def timed_segments() -> list[dict]:
    return [
        {"speaker": "manager", "text": "hello there", "timestamp": "0:00"},
        {"speaker": "client", "text": "hi", "timestamp": "0:05"},
        {"speaker": "manager", "text": "bye", "timestamp": "0:08"},
    ]


@pytest.fixture
def nested_row() -> AnalysisRow:
    """Analysis stored with category mistakes and tag -> complaint info."""
    return AnalysisRow(
        audio_file_id=1,
        category="Sales",
        overall_score=70,
        criteria_scores=json.dumps({"Greeting": 80, "Closing": 60}),
        category_mistakes=json.dumps(
            {
                "Sales": {
                    "No greeting": {
                        "count": 2,
                        "recommendation": "Greet the client",
                        "tag": "greeting",
                    }
                }
            }
        ),
        client_complaints=json.dumps(
            {
                "price": {
                    "count": 2,
                    "examples": ["Too expensive"],
                    "textCounts": {"Too expensive": 2},
                }
            }
        ),
    )


@pytest.fixture
def legacy_row() -> AnalysisRow:
    """Analysis stored with flat mistake and objection lists."""
    return AnalysisRow(
        audio_file_id=2,
        category="Sales",
        overall_score=50,
        criteria_scores={"Greeting": 40, "Closing": 60},
        mistakes=[
            {"mistake": "No greeting", "recommendation": "Greet the client", "tag": "greeting"},
            {"mistake": "No greeting", "recommendation": "", "tag": "greeting"},
        ],
        objections=[
            {"text": "Too expensive", "tag": "price"},
            {"text": "Too expensive", "tag": "price"},
        ],
    )


@pytest.fixture
def call_records(nested_row, legacy_row, timed_segments) -> list[CallRecord]:
    return [
        CallRecord(
            audio_file_id=1,
            manager_id=10,
            manager_name="Anna",
            upload_date="2024-05-20T09:15:00Z",
            status="completed",
            original_name="call-1.mp3",
            analysis=nested_row,
            segments=json.dumps(timed_segments),
        ),
        CallRecord(
            audio_file_id=2,
            manager_id=10,
            manager_name="Anna",
            upload_date="2024-05-18T14:00:00Z",
            status="completed",
            original_name="call-2.mp3",
            analysis=legacy_row,
        ),
        CallRecord(
            audio_file_id=3,
            manager_id=20,
            manager_name="Boris",
            upload_date="2024-05-19T11:30:00Z",
            status="completed",
            original_name="call-3.mp3",
            analysis=AnalysisRow(
                audio_file_id=3,
                category="Support",
                overall_score=90,
                criteria_scores='{"Empathy": 90}',
            ),
        ),
        CallRecord(
            audio_file_id=4,
            manager_id=20,
            manager_name="Boris",
            upload_date="2024-05-20T12:00:00Z",
            status="processing",
            original_name="call-4.mp3",
        ),
    ]


@pytest.fixture
def dataset_dict(timed_segments) -> dict:
    return {
        "categories": [
            {"name": "Sales", "criteria": '["Greeting", "Closing"]'},
            {"name": "Support", "criteria": ["Empathy"]},
        ],
        "managers": [{"id": 10, "name": "Anna"}, {"id": 20, "name": "Boris"}],
        "audio_files": [
            {
                "id": 1,
                "manager_id": 10,
                "upload_date": "2024-05-20T09:15:00Z",
                "status": "completed",
                "original_name": "call-1.mp3",
            },
            {
                "id": 2,
                "manager_id": 20,
                "upload_date": "2024-05-19T11:30:00Z",
                "status": "completed",
                "original_name": "call-2.mp3",
            },
            {
                "id": 3,
                "manager_id": 20,
                "upload_date": "2024-05-19T12:00:00Z",
                "status": "error",
                "original_name": "call-3.mp3",
            },
        ],
        "analyses": [
            {
                "audio_file_id": 1,
                "category": "Sales",
                "overall_score": 40,
                "criteria_scores": '{"Greeting": 40}',
            },
            {
                "audio_file_id": 1,
                "category": "Sales",
                "overall_score": 70,
                "criteria_scores": '{"Greeting": 80, "Closing": 60}',
                "mistakes": '[{"mistake": "No greeting", "recommendation": "Greet", "tag": "greeting"}]',
                "objections": '[{"text": "Too expensive", "tag": "price"}]',
            },
            {
                "audio_file_id": 2,
                "category": "Support",
                "overall_score": 90,
                "criteria_scores": {"Empathy": 90},
                "client_complaints": {"price": 1},
            },
            {"audio_file_id": 99, "category": "Sales", "overall_score": 10},
        ],
        "transcriptions": [
            {"audio_file_id": 1, "segments": json.dumps(timed_segments)},
        ],
    }


@pytest.fixture
def dataset_file(tmp_path, dataset_dict):
    path = tmp_path / "dataset.json"
    path.write_text(json.dumps(dataset_dict))
    return path

"""Loading exported call data and saving statistics."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger

from .constants import (
    DEFAULT_MANAGER_STATS_OUTPUT,
    EMPTY_STRING,
    JSON_INDENT,
    AnalysisRowKey,
    DatasetKey,
    LegacyKey,
    LogMessage,
    StatsKey,
)
from .models import AnalysisRow, CallRecord, CategoryCatalog
from .normalizer import decode_json_field


@dataclass
class CallDataset:
    """Calls joined with their analyses, plus the category catalog.

    Attributes:
        records: One record per uploaded audio file.
        catalog: Categories and criterion -> category mapping.
    """

    records: list[CallRecord] = field(default_factory=list)
    catalog: CategoryCatalog = field(default_factory=CategoryCatalog)

    def find(self, audio_file_id: Any) -> CallRecord | None:
        for record in self.records:
            if str(record.audio_file_id) == str(audio_file_id):
                return record
        return None


def _by_audio_file(rows: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    # A retried call is deleted and re-created, so the last row wins
    return {
        str(row.get(AnalysisRowKey.AUDIO_FILE_ID)): row
        for row in rows
        if row.get(AnalysisRowKey.AUDIO_FILE_ID) is not None
    }


def parse_dataset(data: dict[str, Any]) -> CallDataset:
    """Join exported tables into call records.

    Args:
        data: Dictionary with categories, managers, audio_files, analyses and
            transcriptions lists.

    Returns:
        CallDataset: Records in audio file order and the catalog.
    """
    catalog = CategoryCatalog.from_dict(
        data=[
            {
                DatasetKey.NAME: entry.get(DatasetKey.NAME),
                DatasetKey.CRITERIA: decode_json_field(
                    entry.get(DatasetKey.CRITERIA), [], field_name=DatasetKey.CRITERIA
                ),
            }
            for entry in data.get(DatasetKey.CATEGORIES) or []
        ]
    )

    manager_names = {
        str(manager.get(DatasetKey.ID)): manager.get(DatasetKey.NAME) or EMPTY_STRING
        for manager in data.get(DatasetKey.MANAGERS) or []
    }
    analyses = _by_audio_file(data.get(DatasetKey.ANALYSES) or [])
    transcriptions = _by_audio_file(data.get(DatasetKey.TRANSCRIPTIONS) or [])

    records: list[CallRecord] = []
    for audio_file in data.get(DatasetKey.AUDIO_FILES) or []:
        file_id = str(audio_file.get(DatasetKey.ID))
        manager_id = audio_file.get(DatasetKey.MANAGER_ID)
        analysis = analyses.pop(file_id, None)
        transcription = transcriptions.get(file_id) or {}
        records.append(
            CallRecord(
                audio_file_id=audio_file.get(DatasetKey.ID),
                manager_id=manager_id,
                manager_name=manager_names.get(str(manager_id), EMPTY_STRING),
                upload_date=audio_file.get(DatasetKey.UPLOAD_DATE),
                status=audio_file.get(DatasetKey.STATUS) or EMPTY_STRING,
                original_name=audio_file.get(DatasetKey.ORIGINAL_NAME),
                analysis=AnalysisRow.from_dict(data=analysis) if analysis else None,
                segments=transcription.get(DatasetKey.SEGMENTS),
            )
        )

    for orphan_id in analyses:
        logger.debug(LogMessage.ORPHAN_ANALYSIS.format(orphan_id))

    return CallDataset(records=records, catalog=catalog)


def load_dataset(filepath: Path | str) -> CallDataset:
    """Load an exported dataset file.

    Args:
        filepath: Path to the dataset JSON file.

    Returns:
        CallDataset: Joined call records and catalog.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    filepath = Path(filepath)
    with filepath.open("r") as f:
        data = json.load(f)

    dataset = parse_dataset(data)
    logger.info(LogMessage.LOADED_DATASET.format(len(dataset.records), filepath))
    return dataset


class StatsStorage:
    """Handles saving statistics to disk."""

    def save_json(
        self,
        *,
        payload: Any,
        filepath: Path | str = DEFAULT_MANAGER_STATS_OUTPUT,
    ) -> None:
        """Save statistics to a JSON file.

        Args:
            payload: JSON-serializable statistics.
            filepath: Path where the JSON file should be saved.
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with filepath.open("w") as f:
            json.dump(payload, f, indent=JSON_INDENT, ensure_ascii=False, default=str)

        logger.success(LogMessage.SAVED_JSON.format("statistics", filepath))

    def save_mistakes_csv(
        self,
        *,
        manager_stats: list[dict[str, Any]],
        filepath: Path | str,
    ) -> pl.DataFrame:
        """Save one row per manager, category and mistake using Polars.

        Args:
            manager_stats: Output of build_manager_stats.
            filepath: Path where the CSV file should be saved.

        Returns:
            pl.DataFrame: The saved table, most frequent mistakes first.
        """
        rows = [
            {
                "manager_id": str(manager[StatsKey.ID]),
                "manager_name": manager[StatsKey.NAME],
                "category": category,
                "mistake": mistake,
                LegacyKey.COUNT.value: info[LegacyKey.COUNT],
                LegacyKey.RECOMMENDATION.value: info[LegacyKey.RECOMMENDATION],
                LegacyKey.TAG.value: info[LegacyKey.TAG],
            }
            for manager in manager_stats
            for category, mistakes in manager[StatsKey.CATEGORY_MISTAKES].items()
            for mistake, info in mistakes.items()
        ]
        schema = {
            "manager_id": pl.Utf8,
            "manager_name": pl.Utf8,
            "category": pl.Utf8,
            "mistake": pl.Utf8,
            LegacyKey.COUNT.value: pl.Int64,
            LegacyKey.RECOMMENDATION.value: pl.Utf8,
            LegacyKey.TAG.value: pl.Utf8,
        }
        df = pl.DataFrame(rows, schema=schema).sort(
            [LegacyKey.COUNT.value, "manager_name"], descending=[True, False]
        )
        return self._write_csv(df=df, filepath=filepath)

    def save_complaints_csv(
        self,
        *,
        manager_stats: list[dict[str, Any]],
        filepath: Path | str,
    ) -> pl.DataFrame:
        """Save one row per manager, complaint tag and complaint text using Polars.

        Tags without recorded texts get a single row with an empty text.

        Args:
            manager_stats: Output of build_manager_stats.
            filepath: Path where the CSV file should be saved.

        Returns:
            pl.DataFrame: The saved table, most frequent tags first.
        """
        rows: list[dict[str, Any]] = []
        for manager in manager_stats:
            for tag, info in manager[StatsKey.CLIENT_COMPLAINTS].items():
                text_counts = info[LegacyKey.TEXT_COUNTS] or {None: None}
                for text, text_count in text_counts.items():
                    rows.append(
                        {
                            "manager_id": str(manager[StatsKey.ID]),
                            "manager_name": manager[StatsKey.NAME],
                            LegacyKey.TAG.value: tag,
                            "tag_count": info[LegacyKey.COUNT],
                            LegacyKey.TEXT.value: text,
                            "text_count": text_count,
                        }
                    )
        schema = {
            "manager_id": pl.Utf8,
            "manager_name": pl.Utf8,
            LegacyKey.TAG.value: pl.Utf8,
            "tag_count": pl.Int64,
            LegacyKey.TEXT.value: pl.Utf8,
            "text_count": pl.Int64,
        }
        df = pl.DataFrame(rows, schema=schema).sort(
            ["tag_count", "manager_name"], descending=[True, False]
        )
        return self._write_csv(df=df, filepath=filepath)

    def _write_csv(self, *, df: pl.DataFrame, filepath: Path | str) -> pl.DataFrame:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        df.write_csv(filepath)
        logger.success(LogMessage.SAVED_CSV.format(len(df), filepath))
        return df

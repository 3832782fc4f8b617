"""Flatten manager statistics into a one-row-per-manager CSV."""

from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from .constants import LegacyKey, LogMessage, StatsKey, TalkRatioKey


def flatten_manager_stats(manager: dict[str, Any]) -> dict[str, Any]:
    """Flatten one manager's statistics into a single-level dict.

    Args:
        manager: One entry of build_manager_stats.

    Returns:
        Flattened dictionary with per-category columns.
    """
    flat: dict[str, Any] = {
        "manager_id": manager[StatsKey.ID],
        "manager_name": manager[StatsKey.NAME],
        StatsKey.TOTAL_AUDIOS.value: manager[StatsKey.TOTAL_AUDIOS],
        StatsKey.AVERAGE_SCORE.value: manager[StatsKey.AVERAGE_SCORE],
        StatsKey.AVERAGE_DURATION.value: manager[StatsKey.AVERAGE_DURATION],
    }

    talk_ratio = manager[StatsKey.TALK_RATIO]
    flat["talk_ratio_manager"] = talk_ratio[TalkRatioKey.MANAGER]
    flat["talk_ratio_customer"] = talk_ratio[TalkRatioKey.CUSTOMER]

    # Per-category columns
    for category, count in manager[StatsKey.CATEGORY_COUNTS].items():
        flat[f"category_count_{category}"] = count
        flat[f"category_score_{category}"] = manager[StatsKey.CATEGORY_SCORES].get(
            category
        )

    mistakes = manager[StatsKey.CATEGORY_MISTAKES]
    flat["mistakes_count"] = sum(
        info[LegacyKey.COUNT]
        for entries in mistakes.values()
        for info in entries.values()
    )

    complaints = manager[StatsKey.CLIENT_COMPLAINTS]
    flat["complaints_count"] = sum(
        info[LegacyKey.COUNT] for info in complaints.values()
    )
    flat["top_complaint_tag"] = (
        max(complaints, key=lambda tag: complaints[tag][LegacyKey.COUNT])
        if complaints
        else None
    )

    return flat


def export_manager_summary(
    manager_stats: list[dict[str, Any]], output_path: Path
) -> pd.DataFrame:
    """Write a one-row-per-manager summary CSV.

    Args:
        manager_stats: Output of build_manager_stats.
        output_path: Path where the CSV should be saved.

    Returns:
        DataFrame with one row per manager, lowest average score first.
    """
    if not manager_stats:
        logger.warning("No manager statistics to export")
        return pd.DataFrame()

    df = pd.DataFrame([flatten_manager_stats(manager) for manager in manager_stats])

    df = df.sort_values(StatsKey.AVERAGE_SCORE.value, ascending=True, kind="stable")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)

    logger.success(LogMessage.SAVED_CSV.format(len(df), output_path))
    logger.info(f"Shape: {df.shape}")

    return df

"""Manager, company and time-series statistics over a set of calls.

Callers hand in already-fetched CallRecords; calls that are still in flight
(status other than completed, or no analysis yet) are excluded from every
aggregate.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from loguru import logger

from .aggregator import aggregate_manager
from .constants import AudioStatus, DatasetKey, LogMessage, StatsKey
from .estimator import estimate_talk_ratio
from .filters import DateWindow, to_date
from .models import AnalysisRecord, AnalysisRow, CallRecord, CategoryCatalog
from .normalizer import build_analysis_record, to_score
from .timestamps import round_half_up


def completed_records(
    records: Iterable[CallRecord], window: DateWindow
) -> list[CallRecord]:
    """Completed, analyzed calls uploaded inside the window."""
    selected: list[CallRecord] = []
    skipped = 0
    for record in records:
        if not record.is_completed:
            skipped += 1
            continue
        if window(record.upload_date):
            selected.append(record)
    if skipped:
        logger.debug(LogMessage.SKIPPED_RECORDS.format(skipped))
    return selected


def to_analysis_record(record: CallRecord, catalog: CategoryCatalog) -> AnalysisRecord:
    """Normalize the stored analysis and transcript of a completed call."""
    return build_analysis_record(
        record.analysis or AnalysisRow(), record.segments, catalog.categories
    )


def _group_by_manager(
    records: Sequence[CallRecord], catalog: CategoryCatalog
) -> dict[Any, tuple[str, list[AnalysisRecord]]]:
    groups: dict[Any, tuple[str, list[AnalysisRecord]]] = {}
    for record in records:
        _, analyses = groups.setdefault(record.manager_id, (record.manager_name, []))
        analyses.append(to_analysis_record(record, catalog))
    return groups


def _manager_entries(
    groups: dict[Any, tuple[str, list[AnalysisRecord]]], catalog: CategoryCatalog
) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for manager_id, (name, analyses) in groups.items():
        stats = aggregate_manager(analyses, catalog)
        logger.debug(LogMessage.AGGREGATED_MANAGER.format(len(analyses), name))
        entries.append({StatsKey.ID: manager_id, StatsKey.NAME: name, **stats.to_dict()})
    return entries


def build_manager_stats(
    records: Iterable[CallRecord], catalog: CategoryCatalog, window: DateWindow
) -> list[dict[str, Any]]:
    """Per-manager statistics for the calls inside a date window.

    Args:
        records: Calls of all managers.
        catalog: Categories and criterion -> category mapping.
        window: Upload date window.

    Returns:
        list[dict[str, Any]]: One entry per manager with at least one call in
        the window, in order of first appearance.
    """
    selected = completed_records(records, window)
    return _manager_entries(_group_by_manager(selected, catalog), catalog)


def build_company_summary(
    records: Iterable[CallRecord], catalog: CategoryCatalog, window: DateWindow
) -> dict[str, Any]:
    """Company-wide statistics across all managers.

    Every figure is computed over the pooled calls of all managers, so the
    average score weights each call equally instead of averaging manager
    averages.

    Args:
        records: Calls of all managers.
        catalog: Categories and criterion -> category mapping.
        window: Upload date window.

    Returns:
        dict[str, Any]: Pooled statistics plus the per-manager breakdown.
    """
    selected = completed_records(records, window)
    groups = _group_by_manager(selected, catalog)
    pooled = [analysis for _, analyses in groups.values() for analysis in analyses]
    stats = aggregate_manager(pooled, catalog)
    return {
        StatsKey.TOTAL_MANAGERS: len(groups),
        **stats.to_dict(),
        StatsKey.MANAGERS: _manager_entries(groups, catalog),
    }


def build_volume_series(
    records: Iterable[CallRecord],
    window: DateWindow,
    manager_ids: Iterable[Any] | None = None,
) -> list[dict[str, Any]]:
    """Number of completed calls per upload date, in total and per manager.

    Args:
        records: Calls of all managers.
        window: Upload date window, usually built with volume=True.
        manager_ids: Only count calls of these managers; None or empty counts all.

    Returns:
        list[dict[str, Any]]: [{date, count, <manager name>: count, ...}] by ascending date.
    """
    wanted = {str(manager_id) for manager_id in manager_ids or ()}
    per_day: dict[date, dict[str, int]] = {}

    for record in records:
        if record.status != AudioStatus.COMPLETED:
            continue
        if wanted and str(record.manager_id) not in wanted:
            continue
        day = to_date(record.upload_date)
        if day is None or not window(day):
            continue
        managers = per_day.setdefault(day, {})
        managers[record.manager_name] = managers.get(record.manager_name, 0) + 1

    return [
        {
            StatsKey.DATE: day.isoformat(),
            StatsKey.COUNT: sum(per_day[day].values()),
            **per_day[day],
        }
        for day in sorted(per_day)
    ]


def build_manager_history(
    records: Iterable[CallRecord], manager_id: Any, window: DateWindow
) -> list[dict[str, Any]]:
    """Average stored overall score per upload date for one manager.

    Returns:
        list[dict[str, Any]]: [{upload_date, overall_score}] by ascending date.
    """
    scores_by_day: dict[date, list[float]] = {}
    for record in completed_records(records, window):
        if str(record.manager_id) != str(manager_id):
            continue
        day = to_date(record.upload_date)
        if day is None:
            continue
        score = to_score(record.analysis.overall_score) or 0
        scores_by_day.setdefault(day, []).append(score)

    return [
        {
            DatasetKey.UPLOAD_DATE: day.isoformat(),
            StatsKey.OVERALL_SCORE: round_half_up(
                sum(scores_by_day[day]) / len(scores_by_day[day])
            ),
        }
        for day in sorted(scores_by_day)
    ]


def build_audio_stats(
    record: CallRecord, catalog: CategoryCatalog
) -> dict[str, Any] | None:
    """Statistics for a single call.

    Args:
        record: The call, joined with its analysis and transcript.
        catalog: Categories used to bucket legacy mistakes.

    Returns:
        dict[str, Any] | None: Scores, mistakes, complaints, talk ratio and
        duration, or None if the call has no analysis.
    """
    if record.analysis is None:
        logger.warning(LogMessage.ANALYSIS_NOT_FOUND.format(record.audio_file_id))
        return None

    analysis = to_analysis_record(record, catalog)
    estimate = estimate_talk_ratio(analysis.segments)

    return {
        StatsKey.FILE: record.file_info(),
        StatsKey.OVERALL_SCORE: analysis.overall_score or 0,
        StatsKey.CRITERIA_SCORES: dict(analysis.normalized.criteria_scores),
        StatsKey.CATEGORY_MISTAKES: analysis.normalized.mistakes_to_dict(),
        StatsKey.CLIENT_COMPLAINTS: analysis.normalized.complaints_to_dict(),
        StatsKey.TALK_RATIO: estimate.talk_ratio.to_dict()
        if estimate.talk_ratio is not None
        else None,
        StatsKey.DURATION: estimate.duration,
    }

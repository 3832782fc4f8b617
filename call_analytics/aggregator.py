"""Fold normalized analyses into manager statistics."""

from collections.abc import Sequence

from .constants import PERCENT
from .estimator import estimate_talk_ratio
from .models import (
    AnalysisRecord,
    CategoryCatalog,
    ComplaintsByTag,
    ManagerStats,
    MistakesByCategory,
    TalkRatio,
)
from .normalizer import merge_complaints, merge_mistakes
from .timestamps import round_half_up


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def analysis_score(record: AnalysisRecord) -> int:
    """Score of a single call.

    The rounded mean of the call's own criteria scores; calls without any
    criteria score fall back to the stored overall score.
    """
    scores = list(record.normalized.criteria_scores.values())
    if scores:
        return round_half_up(_mean(scores))
    return round_half_up(record.overall_score or 0)


def average_talk_ratio(talk_ratios: Sequence[TalkRatio]) -> TalkRatio:
    """Average manager share over calls; the customer gets the remainder."""
    if not talk_ratios:
        return TalkRatio.default()
    manager = round_half_up(_mean([ratio.manager for ratio in talk_ratios]))
    return TalkRatio(manager=manager, customer=PERCENT - manager)


def aggregate_manager(
    analyses: Sequence[AnalysisRecord], catalog: CategoryCatalog
) -> ManagerStats:
    """Aggregate a set of analyses into category, criteria, mistake and talk statistics.

    Category scores average the per-call mean of criteria scores for calls
    whose category is in the catalog. Criteria scores are reported under the
    catalog category owning the criterion, falling back to the call's category,
    the first catalog category, then "default". Calls without a computable
    talk ratio or duration are left out of those averages rather than counted
    as zero.

    Args:
        analyses: Normalized analyses, typically all calls of one manager.
        catalog: Categories and criterion -> category mapping.

    Returns:
        ManagerStats: Aggregated statistics with integer averages.
    """
    category_scores: dict[str, list[int]] = {name: [] for name in catalog.categories}
    category_counts: dict[str, int] = {name: 0 for name in catalog.categories}
    criteria_scores: dict[str, dict[str, list[float]]] = {
        name: {} for name in catalog.categories
    }
    category_mistakes: MistakesByCategory = {name: {} for name in catalog.categories}
    client_complaints: ComplaintsByTag = {}
    call_scores: list[int] = []
    talk_ratios: list[TalkRatio] = []
    durations: list[int] = []

    for analysis in analyses:
        scores = analysis.normalized.criteria_scores
        call_scores.append(analysis_score(analysis))

        category = analysis.category
        if category and category in catalog and scores:
            category_scores[category].append(round_half_up(_mean(list(scores.values()))))
            category_counts[category] += 1

        for criterion, score in scores.items():
            bucket = catalog.category_for(criterion, category)
            criteria_scores.setdefault(bucket, {}).setdefault(criterion, []).append(score)

        merge_mistakes(category_mistakes, analysis.normalized.mistakes)
        merge_complaints(client_complaints, analysis.normalized.complaints)

        if analysis.segments:
            estimate = estimate_talk_ratio(analysis.segments)
            if estimate.talk_ratio is not None:
                talk_ratios.append(estimate.talk_ratio)
            if estimate.duration is not None:
                durations.append(estimate.duration)

    return ManagerStats(
        total_calls=len(analyses),
        average_score=round_half_up(_mean(call_scores)) if call_scores else 0,
        category_scores={
            name: round_half_up(_mean(values))
            for name, values in category_scores.items()
            if values
        },
        category_counts=category_counts,
        criteria_scores={
            name: {
                criterion: round_half_up(_mean(values))
                for criterion, values in criteria.items()
                if values
            }
            for name, criteria in criteria_scores.items()
        },
        talk_ratio=average_talk_ratio(talk_ratios),
        average_duration=round_half_up(_mean(durations)) if durations else 0,
        category_mistakes=category_mistakes,
        client_complaints=client_complaints,
    )

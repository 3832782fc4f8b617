"""Normalize stored analysis rows into one canonical shape.

Analyses have been persisted in three generations of JSON:

- mistakes as a flat list of {mistake, recommendation, tag} occurrences, or
  as a category -> mistake text -> {count, recommendation, tag} map;
- complaints as a flat list of {text, tag} objections, as a
  tag -> {count, examples, textCounts} map, or as the oldest key -> count
  map where a key is either a tag or a literal complaint text.

Everything is decoded here once, so aggregation code never looks at the
storage format.
"""

import json
import math
from collections.abc import Iterable
from typing import Any

from loguru import logger

from .constants import (
    DEFAULT_CATEGORY,
    DEFAULT_MISTAKE_TEXT,
    DEFAULT_TAG,
    EMPTY_STRING,
    JSON_NULL,
    LEGACY_TAG_MAX_LENGTH,
    AnalysisRowKey,
    LegacyKey,
    LogMessage,
)
from .models import (
    AnalysisRecord,
    AnalysisRow,
    ComplaintInfo,
    ComplaintsByTag,
    MistakeInfo,
    MistakesByCategory,
    NormalizedAnalysis,
    TranscriptSegment,
)
from .timestamps import parse_int_prefix

# Field is absent or explicitly null
_ABSENT = None

_FIELD_ERRORS = (ValueError, TypeError, AttributeError)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def _load_json(value: Any) -> Any:
    """Decode a JSON column; raises on malformed text."""
    if value is None or value == JSON_NULL:
        return _ABSENT
    if not isinstance(value, (str, bytes, bytearray)):
        return value
    return json.loads(value, parse_constant=_reject_constant)


def decode_json_field(value: Any, default: Any = None, *, field_name: str = "json") -> Any:
    """Safely decode a JSON column that may already be decoded.

    Args:
        value: JSON string, already decoded value, None or the string "null".
        default: Returned when the value is empty or cannot be decoded.
        field_name: Column name used in the warning log.

    Returns:
        Any: Decoded value, or default.
    """
    try:
        decoded = _load_json(value)
    except _FIELD_ERRORS as e:
        logger.warning(LogMessage.JSON_FIELD_INVALID.format(field_name, e))
        return default
    return default if decoded is _ABSENT else decoded


def to_count(value: Any) -> int:
    """Coerce a stored count to int, treating anything unreadable as zero."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        return parse_int_prefix(value)
    return 0


def is_legacy_tag(key: str) -> bool:
    """Whether a key of the oldest complaint format names a tag.

    Short keys without a period are tags; anything else is complaint text.
    """
    return len(key) < LEGACY_TAG_MAX_LENGTH and "." not in key


def to_score(value: Any) -> float | None:
    """Return a stored score if it is a finite number, otherwise None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return None
    return value if finite else None


def _is_score(value: Any) -> bool:
    return to_score(value) is not None


def add_mistake(
    bucket: dict[str, MistakeInfo],
    text: str,
    *,
    count: int,
    recommendation: str,
    tag: str,
) -> None:
    """Add occurrences of a mistake, keeping the first non-empty recommendation and tag."""
    info = bucket.get(text)
    if info is None:
        info = MistakeInfo(count=0, recommendation=recommendation, tag=tag)
        bucket[text] = info
    info.count += count
    if not info.recommendation and recommendation:
        info.recommendation = recommendation
    if not info.tag and tag:
        info.tag = tag


def merge_mistakes(target: MistakesByCategory, source: MistakesByCategory) -> None:
    """Fold one category -> mistake mapping into another, summing counts."""
    for category, entries in source.items():
        bucket = target.setdefault(category, {})
        for text, info in entries.items():
            add_mistake(
                bucket,
                text,
                count=info.count,
                recommendation=info.recommendation,
                tag=info.tag,
            )


def merge_complaints(target: ComplaintsByTag, source: ComplaintsByTag) -> None:
    """Fold one tag -> complaint mapping into another.

    Counts and per-text counts are summed, examples are unioned in first-seen
    order.
    """
    for tag, info in source.items():
        merged = target.setdefault(tag, ComplaintInfo())
        merged.count += info.count
        for example in info.examples:
            if example not in merged.examples:
                merged.examples.append(example)
        for text, count in info.text_counts.items():
            merged.text_counts[text] = merged.text_counts.get(text, 0) + count


def _add_legacy_complaint(complaints: ComplaintsByTag, key: str, count: int) -> None:
    if is_legacy_tag(key):
        complaints.setdefault(key, ComplaintInfo()).count += count
        return
    info = complaints.setdefault(DEFAULT_TAG, ComplaintInfo())
    info.count += count
    info.add_example(key, count)


def _decode_criteria(row: AnalysisRow) -> dict[str, float]:
    decoded = _load_json(row.criteria_scores)
    if decoded is _ABSENT:
        return {}
    if not isinstance(decoded, dict):
        logger.warning(
            LogMessage.JSON_FIELD_SHAPE.format(
                AnalysisRowKey.CRITERIA_SCORES, type(decoded).__name__
            )
        )
        return {}
    return {str(name): score for name, score in decoded.items() if _is_score(score)}


def _mistakes_from_map(decoded: dict[str, Any]) -> MistakesByCategory:
    mistakes: MistakesByCategory = {}
    for category, entries in decoded.items():
        bucket = mistakes.setdefault(str(category), {})
        if not isinstance(entries, dict):
            continue
        for text, info in entries.items():
            if isinstance(info, dict):
                add_mistake(
                    bucket,
                    str(text),
                    count=to_count(info.get(LegacyKey.COUNT)) or 1,
                    recommendation=info.get(LegacyKey.RECOMMENDATION) or EMPTY_STRING,
                    tag=info.get(LegacyKey.TAG) or DEFAULT_TAG,
                )
            else:
                # Count-only entries predate recommendations and tags
                add_mistake(
                    bucket,
                    str(text),
                    count=to_count(info),
                    recommendation=EMPTY_STRING,
                    tag=DEFAULT_TAG,
                )
    return mistakes


def _mistakes_from_list(decoded: list[Any], category: str) -> MistakesByCategory:
    bucket: dict[str, MistakeInfo] = {}
    for item in decoded:
        if not isinstance(item, dict):
            continue
        add_mistake(
            bucket,
            str(item.get(LegacyKey.MISTAKE) or DEFAULT_MISTAKE_TEXT),
            count=1,
            recommendation=item.get(LegacyKey.RECOMMENDATION) or EMPTY_STRING,
            tag=item.get(LegacyKey.TAG) or DEFAULT_TAG,
        )
    return {category: bucket}


def _decode_mistakes(
    row: AnalysisRow, known_categories: Iterable[str]
) -> MistakesByCategory:
    nested = _load_json(row.category_mistakes)
    if nested is not _ABSENT:
        if isinstance(nested, dict):
            return _mistakes_from_map(nested)
        logger.warning(
            LogMessage.JSON_FIELD_SHAPE.format(
                AnalysisRowKey.CATEGORY_MISTAKES, type(nested).__name__
            )
        )
        return {}

    legacy = _load_json(row.mistakes)
    if legacy is _ABSENT:
        return {}
    if not isinstance(legacy, list):
        logger.warning(
            LogMessage.JSON_FIELD_SHAPE.format(
                AnalysisRowKey.MISTAKES, type(legacy).__name__
            )
        )
        return {}

    category = row.category or next(iter(known_categories), None) or DEFAULT_CATEGORY
    return _mistakes_from_list(legacy, category)


def _complaints_from_map(decoded: dict[str, Any]) -> ComplaintsByTag:
    complaints: ComplaintsByTag = {}
    for key, value in decoded.items():
        key = str(key)
        if isinstance(value, dict):
            examples = value.get(LegacyKey.EXAMPLES) or []
            text_counts = value.get(LegacyKey.TEXT_COUNTS) or {}
            entry = ComplaintInfo(
                count=to_count(value.get(LegacyKey.COUNT)),
                examples=[example for example in examples if isinstance(example, str)]
                if isinstance(examples, list)
                else [],
                text_counts={
                    str(text): to_count(count) for text, count in text_counts.items()
                }
                if isinstance(text_counts, dict)
                else {},
            )
            merge_complaints(complaints, {key: entry})
        else:
            _add_legacy_complaint(complaints, key, to_count(value))
    return complaints


def _complaints_from_objections(decoded: list[Any]) -> ComplaintsByTag:
    complaints: ComplaintsByTag = {}
    for objection in decoded:
        if not isinstance(objection, dict):
            continue
        info = complaints.setdefault(
            str(objection.get(LegacyKey.TAG) or DEFAULT_TAG), ComplaintInfo()
        )
        info.count += 1
        text = objection.get(LegacyKey.TEXT)
        if text:
            info.add_example(str(text), 1)
    return complaints


def _decode_complaints(row: AnalysisRow) -> ComplaintsByTag:
    current = _load_json(row.client_complaints)
    if current is not _ABSENT:
        if isinstance(current, dict):
            return _complaints_from_map(current)
        if isinstance(current, list):
            return _complaints_from_objections(current)
        logger.warning(
            LogMessage.JSON_FIELD_SHAPE.format(
                AnalysisRowKey.CLIENT_COMPLAINTS, type(current).__name__
            )
        )
        return {}

    objections = _load_json(row.objections)
    if objections is _ABSENT:
        return {}
    if not isinstance(objections, list):
        logger.warning(
            LogMessage.JSON_FIELD_SHAPE.format(
                AnalysisRowKey.OBJECTIONS, type(objections).__name__
            )
        )
        return {}
    return _complaints_from_objections(objections)


def normalize_analysis(
    row: AnalysisRow, known_categories: Iterable[str] = ()
) -> NormalizedAnalysis:
    """Decode a stored analysis row into canonical scores, mistakes and complaints.

    Each of the three fields is decoded independently: a malformed field is
    logged and replaced by its empty value without affecting the others.

    Args:
        row: The stored analysis row.
        known_categories: Catalog category names in order. The first one
            buckets legacy mistakes of an analysis without a category.

    Returns:
        NormalizedAnalysis: The canonical form of the row.
    """
    normalized = NormalizedAnalysis()

    try:
        normalized.criteria_scores = _decode_criteria(row)
    except _FIELD_ERRORS as e:
        logger.warning(
            LogMessage.JSON_FIELD_INVALID.format(AnalysisRowKey.CRITERIA_SCORES, e)
        )

    try:
        normalized.mistakes = _decode_mistakes(row, known_categories)
    except _FIELD_ERRORS as e:
        logger.warning(LogMessage.JSON_FIELD_INVALID.format(AnalysisRowKey.MISTAKES, e))

    try:
        normalized.complaints = _decode_complaints(row)
    except _FIELD_ERRORS as e:
        logger.warning(
            LogMessage.JSON_FIELD_INVALID.format(AnalysisRowKey.CLIENT_COMPLAINTS, e)
        )

    return normalized


def parse_segments(raw: Any) -> list[TranscriptSegment]:
    """Decode stored transcript segments.

    Args:
        raw: JSON string or decoded list of segment dictionaries.

    Returns:
        list[TranscriptSegment]: Segments in storage order, empty if undecodable.
    """
    try:
        decoded = _load_json(raw)
    except _FIELD_ERRORS as e:
        logger.warning(LogMessage.SEGMENTS_INVALID.format(e))
        return []

    if not isinstance(decoded, list):
        if decoded is not _ABSENT:
            logger.warning(LogMessage.SEGMENTS_INVALID.format(type(decoded).__name__))
        return []

    return [
        TranscriptSegment.from_dict(data=segment)
        for segment in decoded
        if isinstance(segment, dict)
    ]


def build_analysis_record(
    row: AnalysisRow, segments: Any = None, known_categories: Iterable[str] = ()
) -> AnalysisRecord:
    """Normalize a stored analysis and its transcript for aggregation."""
    return AnalysisRecord(
        category=row.category,
        overall_score=to_score(row.overall_score),
        normalized=normalize_analysis(row, known_categories),
        segments=parse_segments(segments),
    )

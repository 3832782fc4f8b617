"""Data models for call analytics aggregation."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .constants import (
    DEFAULT_CATEGORY,
    DEFAULT_TALK_RATIO,
    EMPTY_STRING,
    AnalysisRowKey,
    AudioStatus,
    DatasetKey,
    LegacyKey,
    SegmentKey,
    StatsKey,
    TalkRatioKey,
)


@dataclass
class TranscriptSegment:
    """One continuous utterance in a call transcript.

    Attributes:
        speaker: Who spoke ('manager', 'client' or 'system').
        text: The transcribed text of the utterance.
        timestamp: Start time as "MM:SS" or "HH:MM:SS", if the transcriber gave one.
    """

    speaker: str
    text: str
    timestamp: str | None = None

    @classmethod
    def from_dict(cls, *, data: dict[str, Any]) -> "TranscriptSegment":
        """Create a TranscriptSegment from a stored segment dictionary.

        Args:
            data: Dictionary with speaker, text and timestamp keys.

        Returns:
            TranscriptSegment: A new segment; missing fields become empty values.
        """
        timestamp = data.get(SegmentKey.TIMESTAMP)
        return cls(
            speaker=str(data.get(SegmentKey.SPEAKER) or EMPTY_STRING),
            text=str(data.get(SegmentKey.TEXT) or EMPTY_STRING),
            timestamp=str(timestamp) if timestamp is not None else None,
        )


@dataclass
class MistakeInfo:
    """Occurrences of one mistake text within a category."""

    count: int
    recommendation: str
    tag: str

    def to_dict(self) -> dict[str, Any]:
        return {
            LegacyKey.COUNT: self.count,
            LegacyKey.RECOMMENDATION: self.recommendation,
            LegacyKey.TAG: self.tag,
        }


@dataclass
class ComplaintInfo:
    """Client complaints sharing one tag.

    Attributes:
        count: Total complaints filed under the tag.
        examples: Distinct complaint texts in first-seen order.
        text_counts: Number of occurrences per complaint text.
    """

    count: int = 0
    examples: list[str] = field(default_factory=list)
    text_counts: dict[str, int] = field(default_factory=dict)

    def add_example(self, text: str, occurrences: int) -> None:
        if text not in self.examples:
            self.examples.append(text)
        self.text_counts[text] = self.text_counts.get(text, 0) + occurrences

    def to_dict(self) -> dict[str, Any]:
        return {
            LegacyKey.COUNT: self.count,
            LegacyKey.EXAMPLES: list(self.examples),
            LegacyKey.TEXT_COUNTS: dict(self.text_counts),
        }


MistakesByCategory = dict[str, dict[str, MistakeInfo]]
ComplaintsByTag = dict[str, ComplaintInfo]


@dataclass
class NormalizedAnalysis:
    """Canonical form of one stored analysis, whatever format it was saved in."""

    criteria_scores: dict[str, float] = field(default_factory=dict)
    mistakes: MistakesByCategory = field(default_factory=dict)
    complaints: ComplaintsByTag = field(default_factory=dict)

    def mistakes_to_dict(self) -> dict[str, Any]:
        return mistakes_to_dict(self.mistakes)

    def complaints_to_dict(self) -> dict[str, Any]:
        return complaints_to_dict(self.complaints)


def mistakes_to_dict(mistakes: MistakesByCategory) -> dict[str, Any]:
    """Serialize a category -> mistake text -> info mapping."""
    return {
        category: {text: info.to_dict() for text, info in entries.items()}
        for category, entries in mistakes.items()
    }


def complaints_to_dict(complaints: ComplaintsByTag) -> dict[str, Any]:
    """Serialize a tag -> complaint info mapping."""
    return {tag: info.to_dict() for tag, info in complaints.items()}


@dataclass
class TalkRatio:
    """Percentage of talk time per side of the call."""

    manager: int
    customer: int

    @classmethod
    def default(cls) -> "TalkRatio":
        return cls(
            manager=DEFAULT_TALK_RATIO[TalkRatioKey.MANAGER],
            customer=DEFAULT_TALK_RATIO[TalkRatioKey.CUSTOMER],
        )

    def to_dict(self) -> dict[str, int]:
        return {TalkRatioKey.MANAGER: self.manager, TalkRatioKey.CUSTOMER: self.customer}


@dataclass
class DurationEstimate:
    """Talk ratio and call length reconstructed from a transcript.

    Either value is None when it cannot be computed from the segments.
    """

    talk_ratio: TalkRatio | None = None
    duration: int | None = None


@dataclass
class AnalysisRow:
    """An analysis row as stored by the processing pipeline.

    JSON columns may hold a JSON string, an already decoded value (JSONB
    drivers decode for us), or None.

    Attributes:
        category: Conversation category assigned by the analysis service.
        criteria_scores: Criterion name -> score (0-100).
        mistakes: Legacy flat list of {mistake, recommendation, tag}.
        category_mistakes: Category -> mistake text -> {count, recommendation, tag}.
        objections: Legacy flat list of {text, tag}.
        client_complaints: Tag -> {count, examples, textCounts}, or the oldest key -> count map.
        overall_score: Mean of the criteria scores computed at ingestion.
        audio_file_id: The call this analysis belongs to.
    """

    category: str | None = None
    criteria_scores: Any = None
    mistakes: Any = None
    category_mistakes: Any = None
    objections: Any = None
    client_complaints: Any = None
    overall_score: float | None = None
    audio_file_id: Any = None

    @classmethod
    def from_dict(cls, *, data: dict[str, Any]) -> "AnalysisRow":
        """Create an AnalysisRow from a database row or exported dictionary.

        Args:
            data: Dictionary keyed by analysis column names.

        Returns:
            AnalysisRow: A new row; absent columns are None.
        """
        return cls(
            category=data.get(AnalysisRowKey.CATEGORY) or None,
            criteria_scores=data.get(AnalysisRowKey.CRITERIA_SCORES),
            mistakes=data.get(AnalysisRowKey.MISTAKES),
            category_mistakes=data.get(AnalysisRowKey.CATEGORY_MISTAKES),
            objections=data.get(AnalysisRowKey.OBJECTIONS),
            client_complaints=data.get(AnalysisRowKey.CLIENT_COMPLAINTS),
            overall_score=data.get(AnalysisRowKey.OVERALL_SCORE),
            audio_file_id=data.get(AnalysisRowKey.AUDIO_FILE_ID),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            AnalysisRowKey.AUDIO_FILE_ID: self.audio_file_id,
            AnalysisRowKey.CATEGORY: self.category,
            AnalysisRowKey.OVERALL_SCORE: self.overall_score,
            AnalysisRowKey.CRITERIA_SCORES: self.criteria_scores,
            AnalysisRowKey.MISTAKES: self.mistakes,
            AnalysisRowKey.CATEGORY_MISTAKES: self.category_mistakes,
            AnalysisRowKey.OBJECTIONS: self.objections,
            AnalysisRowKey.CLIENT_COMPLAINTS: self.client_complaints,
        }


@dataclass
class AnalysisRecord:
    """A normalized analysis ready for aggregation.

    Attributes:
        category: Conversation category of the call, if any.
        overall_score: Stored overall score, used when no criteria scores exist.
        normalized: Canonical criteria scores, mistakes and complaints.
        segments: Transcript segments of the call (may be empty).
    """

    category: str | None
    overall_score: float | None
    normalized: NormalizedAnalysis
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass
class CategoryCatalog:
    """Conversation categories and the criteria scored under each.

    Attributes:
        categories: Category names in catalog order.
        criterion_to_category: Criterion name -> owning category name.
    """

    categories: list[str] = field(default_factory=list)
    criterion_to_category: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, *, data: list[dict[str, Any]]) -> "CategoryCatalog":
        """Build a catalog from a list of {name, criteria} entries.

        Args:
            data: Category entries; criteria is a list of criterion names.

        Returns:
            CategoryCatalog: Catalog preserving the given category order.
        """
        categories: list[str] = []
        criterion_to_category: dict[str, str] = {}
        for entry in data:
            name = entry.get(DatasetKey.NAME)
            if not name or name in categories:
                continue
            categories.append(name)
            for criterion in entry.get(DatasetKey.CRITERIA) or []:
                criterion_to_category[criterion] = name
        return cls(categories=categories, criterion_to_category=criterion_to_category)

    def __contains__(self, category: object) -> bool:
        return category in self.categories

    def first_category(self) -> str:
        """Return the first catalog category, or the default bucket name."""
        return self.categories[0] if self.categories else DEFAULT_CATEGORY

    def fallback_category(self, category: str | None) -> str:
        """Resolve the bucket for data whose category is not otherwise known."""
        return category or self.first_category()

    def category_for(self, criterion: str, analysis_category: str | None) -> str:
        """Resolve the category a criterion score is reported under."""
        mapped = self.criterion_to_category.get(criterion)
        if mapped:
            return mapped
        return self.fallback_category(analysis_category)


@dataclass
class CallRecord:
    """A call joined with its manager, analysis and transcript.

    Attributes:
        audio_file_id: Identifier of the uploaded audio file.
        manager_id: Identifier of the manager who handled the call.
        manager_name: Display name of the manager.
        upload_date: When the call was uploaded (date, datetime or ISO string).
        status: Processing status of the call.
        original_name: Original uploaded filename.
        analysis: Stored analysis row, None while the call is in flight.
        segments: Stored transcript segments (JSON string or decoded list).
    """

    audio_file_id: Any
    manager_id: Any
    manager_name: str
    upload_date: date | datetime | str | None
    status: str
    original_name: str | None = None
    analysis: AnalysisRow | None = None
    segments: Any = None

    @property
    def is_completed(self) -> bool:
        return self.status == AudioStatus.COMPLETED and self.analysis is not None

    def file_info(self) -> dict[str, Any]:
        upload_date = self.upload_date
        if isinstance(upload_date, (date, datetime)):
            upload_date = upload_date.isoformat()
        return {
            DatasetKey.ID: self.audio_file_id,
            DatasetKey.ORIGINAL_NAME: self.original_name,
            StatsKey.MANAGER_NAME: self.manager_name,
            DatasetKey.UPLOAD_DATE: upload_date,
            DatasetKey.STATUS: self.status,
        }


@dataclass
class ManagerStats:
    """Aggregated statistics for a set of analyses.

    Rebuilt on every request from the analyses in the active date window and
    never persisted.
    """

    total_calls: int
    average_score: int
    category_scores: dict[str, int]
    category_counts: dict[str, int]
    criteria_scores: dict[str, dict[str, int]]
    talk_ratio: TalkRatio
    average_duration: int
    category_mistakes: MistakesByCategory
    client_complaints: ComplaintsByTag

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to the JSON shape consumed by the dashboard.

        Returns:
            dict[str, Any]: Statistics keyed by dashboard field names.
        """
        return {
            StatsKey.TOTAL_AUDIOS: self.total_calls,
            StatsKey.AVERAGE_SCORE: self.average_score,
            StatsKey.CATEGORY_SCORES: dict(self.category_scores),
            StatsKey.CATEGORY_COUNTS: dict(self.category_counts),
            StatsKey.CRITERIA_SCORES: {
                category: dict(criteria)
                for category, criteria in self.criteria_scores.items()
            },
            StatsKey.TALK_RATIO: self.talk_ratio.to_dict(),
            StatsKey.AVERAGE_DURATION: self.average_duration,
            StatsKey.CATEGORY_MISTAKES: mistakes_to_dict(self.category_mistakes),
            StatsKey.CLIENT_COMPLAINTS: complaints_to_dict(self.client_complaints),
        }

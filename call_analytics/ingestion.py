"""Structured results of the call analysis service and their storage form."""

import json
from typing import Any

from pydantic import BaseModel, Field

from .constants import EMPTY_STRING, MistakeTag, Speaker
from .models import AnalysisRow, TranscriptSegment
from .timestamps import round_half_up


class TranscriptSegmentResult(BaseModel):
    """One speaker turn returned by the transcription step."""

    speaker: Speaker = Field(description="Who is speaking: manager, client or system")
    text: str = Field(description="Verbatim text of the turn")
    timestamp: str | None = Field(
        default=None, description="Start of the turn (HH:MM:SS or MM:SS)"
    )


class TranscriptionResult(BaseModel):
    """Diarized transcript of a call."""

    segments: list[TranscriptSegmentResult] = Field(
        default_factory=list,
        description="Array of conversation segments with speaker identification",
    )

    def to_segments(self) -> list[TranscriptSegment]:
        return [
            TranscriptSegment(
                speaker=segment.speaker.value,
                text=segment.text,
                timestamp=segment.timestamp,
            )
            for segment in self.segments
        ]


class Objection(BaseModel):
    """A client statement that blocks, delays or resists the manager's goal."""

    text: str = Field(description="Exact text of the objection")
    tag: str = Field(description="Category tag for the objection")
    timestamp: str | None = Field(
        default=None, description="When the objection occurred in the call"
    )


class Mistake(BaseModel):
    """A manager mistake with a short recommendation."""

    mistake: str = Field(description="Description of the mistake")
    recommendation: str = Field(description="How to avoid the mistake")
    tag: MistakeTag = Field(description="Category tag for the mistake")
    timestamp: str | None = Field(
        default=None, description="When the mistake occurred in the call"
    )


class Mood(BaseModel):
    """Mood of both sides of the call."""

    manager: str = Field(description="Mood of the manager")
    client: str = Field(description="Mood of the client")
    overall: str = Field(description="Overall mood of the call")


class CallAnalysisResult(BaseModel):
    """Complete analysis result for a single call."""

    scores: dict[str, float] = Field(
        default_factory=dict, description="Criterion name -> score from 0 to 100"
    )
    objections: list[Objection] = Field(
        default_factory=list, description="Client objections, most important first"
    )
    mistakes: list[Mistake] = Field(
        default_factory=list, description="Manager mistakes, most important first"
    )
    mood: Mood | None = Field(default=None, description="Mood of the call")
    feedback: str = Field(
        default=EMPTY_STRING, description="Overall conclusion about the call"
    )


class CallProcessingResult(BaseModel):
    """Everything the analysis service returns for one uploaded call."""

    category: str | None = Field(
        default=None, description="Conversation category identified for the call"
    )
    transcription: TranscriptionResult = Field(description="Diarized transcript")
    analysis: CallAnalysisResult = Field(description="Scores, mistakes and objections")


def compute_overall_score(scores: dict[str, float]) -> int | None:
    """Rounded mean of the criterion scores, None without scores."""
    values = list(scores.values())
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def build_analysis_row(
    result: CallAnalysisResult,
    *,
    category: str | None = None,
    audio_file_id: Any = None,
) -> AnalysisRow:
    """Convert an analysis result into the row stored for the call.

    Mistakes and objections are stored as flat lists and the overall score is
    stored alongside the criteria scores.

    Args:
        result: Validated analysis result.
        category: Category identified for the call.
        audio_file_id: The call the analysis belongs to.

    Returns:
        AnalysisRow: Row with JSON-encoded columns.
    """
    return AnalysisRow(
        audio_file_id=audio_file_id,
        category=category or None,
        overall_score=compute_overall_score(result.scores),
        criteria_scores=json.dumps(result.scores, ensure_ascii=False),
        mistakes=json.dumps(
            [mistake.model_dump(mode="json") for mistake in result.mistakes],
            ensure_ascii=False,
        ),
        objections=json.dumps(
            [objection.model_dump(mode="json") for objection in result.objections],
            ensure_ascii=False,
        ),
    )

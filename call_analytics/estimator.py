"""Talk ratio and call duration estimation from transcript segments."""

import re
from collections.abc import Sequence

from .constants import (
    MIN_TRAILING_SEGMENT_SECONDS,
    MIN_UNTIMED_SEGMENT_SECONDS,
    PERCENT,
    TALK_TIME_SHARE,
    WORDS_PER_SECOND,
    Speaker,
)
from .models import DurationEstimate, TalkRatio, TranscriptSegment
from .timestamps import parse_timestamp, round_half_up

_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    """Count whitespace-separated words.

    An empty string counts as one word and leading or trailing whitespace adds
    one, which the stored durations were computed with.
    """
    return len(_WHITESPACE.split(text or ""))


def _speech_seconds(text: str, minimum: int) -> int:
    return max(minimum, round_half_up(count_words(text) / WORDS_PER_SECOND))


def sort_segments(segments: Sequence[TranscriptSegment]) -> list[TranscriptSegment]:
    """Order segments by start time; segments without a usable timestamp go last.

    The sort is stable, so segments sharing a start time keep their storage order.
    """

    def start_key(segment: TranscriptSegment) -> tuple[bool, int]:
        start = parse_timestamp(segment.timestamp)
        return (start is None, start or 0)

    return sorted(segments, key=start_key)


def _timed_talk(segments: Sequence[TranscriptSegment]) -> tuple[int, int, int]:
    manager_time = 0
    customer_time = 0
    max_end_time = 0

    ordered = sort_segments(segments)
    starts = [parse_timestamp(segment.timestamp) for segment in ordered]

    for index, segment in enumerate(ordered):
        speaker = segment.speaker.lower()
        if speaker == Speaker.SYSTEM:
            continue

        start = starts[index]
        if start is None:
            continue

        next_start = next(
            (
                later
                for later in starts[index + 1 :]
                if later is not None and later > start
            ),
            None,
        )
        if next_start is not None:
            duration = next_start - start
        else:
            duration = _speech_seconds(segment.text, MIN_TRAILING_SEGMENT_SECONDS)

        if speaker == Speaker.MANAGER:
            manager_time += duration
        elif speaker == Speaker.CLIENT:
            customer_time += duration

        # Segments may overlap or leave gaps, so the call ends at the latest end
        max_end_time = max(max_end_time, start + duration)

    return manager_time, customer_time, max_end_time


def _untimed_talk(segments: Sequence[TranscriptSegment]) -> tuple[int, int, int]:
    manager_time = 0
    customer_time = 0

    for segment in segments:
        speaker = segment.speaker.lower()
        if speaker == Speaker.SYSTEM:
            continue

        duration = _speech_seconds(segment.text, MIN_UNTIMED_SEGMENT_SECONDS)
        if speaker == Speaker.MANAGER:
            manager_time += duration
        elif speaker == Speaker.CLIENT:
            customer_time += duration

    # Talk takes up roughly 60% of a call, the rest is silence and pauses
    call_duration = round_half_up((manager_time + customer_time) / TALK_TIME_SHARE)
    return manager_time, customer_time, call_duration


def estimate_talk_ratio(segments: Sequence[TranscriptSegment]) -> DurationEstimate:
    """Reconstruct talk ratio and call duration from transcript segments.

    When at least one segment carries a parsable timestamp, each turn lasts
    until the next later-starting segment and the call lasts until the latest
    turn ends. Otherwise turn lengths are estimated from word counts.

    Manager and customer percentages are rounded independently, so they may
    not add up to exactly 100.

    Args:
        segments: Transcript segments in any order.

    Returns:
        DurationEstimate: Talk ratio (None without any talk time) and
        duration in seconds (None when zero).
    """
    if not segments:
        return DurationEstimate()

    has_timestamps = any(
        parse_timestamp(segment.timestamp) is not None for segment in segments
    )
    if has_timestamps:
        manager_time, customer_time, call_duration = _timed_talk(segments)
    else:
        manager_time, customer_time, call_duration = _untimed_talk(segments)

    total_time = manager_time + customer_time
    talk_ratio = None
    if total_time > 0:
        talk_ratio = TalkRatio(
            manager=round_half_up(manager_time / total_time * PERCENT),
            customer=round_half_up(customer_time / total_time * PERCENT),
        )

    return DurationEstimate(
        talk_ratio=talk_ratio,
        duration=call_duration if call_duration > 0 else None,
    )

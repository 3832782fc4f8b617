"""Constants and enumerations for call analytics aggregation."""

from enum import StrEnum
from typing import Final


# Estimation heuristics
WORDS_PER_SECOND: Final[float] = 2.5
TALK_TIME_SHARE: Final[float] = 0.6
MIN_TRAILING_SEGMENT_SECONDS: Final[int] = 2
MIN_UNTIMED_SEGMENT_SECONDS: Final[int] = 1
PERCENT: Final[int] = 100

# Default Values
DEFAULT_CATEGORY: Final[str] = "default"
DEFAULT_TAG: Final[str] = "other"
DEFAULT_MISTAKE_TEXT: Final[str] = "Unknown mistake"
DEFAULT_TALK_RATIO: Final[dict[str, int]] = {"manager": 50, "customer": 50}
DEFAULT_DATASET_PATH: Final[str] = "dataset.json"
DEFAULT_MANAGER_STATS_OUTPUT: Final[str] = "manager_stats.json"

# Oldest complaint format: keys shorter than this without a period are tags
LEGACY_TAG_MAX_LENGTH: Final[int] = 50

# 'all' period lookback applied to volume views
VOLUME_ALL_LOOKBACK_DAYS: Final[int] = 90

# JSON Serialization
JSON_INDENT: Final[int] = 2
JSON_NULL: Final[str] = "null"

# Empty Values
EMPTY_STRING: Final[str] = ""

# Numeric Constants
EXIT_CODE_ERROR: Final[int] = 1


class Speaker(StrEnum):
    """Transcript segment speakers."""

    MANAGER = "manager"
    CLIENT = "client"
    SYSTEM = "system"


class Period(StrEnum):
    """Date window selectors."""

    TODAY = "today"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    CUSTOM = "custom"
    ALL = "all"


class AudioStatus(StrEnum):
    """Processing status of an uploaded call."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class MistakeTag(StrEnum):
    """Tags the analysis service may assign to a mistake."""

    GREETING = "greeting"
    INTRODUCTION = "introduction"
    QUESTIONING = "questioning"
    EXPLANATION = "explanation"
    OBJECTION_HANDLING = "objection_handling"
    CLOSING = "closing"
    COMMUNICATION = "communication"
    OTHER = "other"


class AnalysisRowKey(StrEnum):
    """Stored analysis row column names."""

    AUDIO_FILE_ID = "audio_file_id"
    CATEGORY = "category"
    CRITERIA_SCORES = "criteria_scores"
    MISTAKES = "mistakes"
    CATEGORY_MISTAKES = "category_mistakes"
    OBJECTIONS = "objections"
    CLIENT_COMPLAINTS = "client_complaints"
    OVERALL_SCORE = "overall_score"


class LegacyKey(StrEnum):
    """Field names inside stored mistake and objection objects."""

    MISTAKE = "mistake"
    RECOMMENDATION = "recommendation"
    TAG = "tag"
    COUNT = "count"
    TEXT = "text"
    EXAMPLES = "examples"
    TEXT_COUNTS = "textCounts"


class SegmentKey(StrEnum):
    """Transcript segment field names."""

    SPEAKER = "speaker"
    TEXT = "text"
    TIMESTAMP = "timestamp"


class DatasetKey(StrEnum):
    """Top-level keys of an exported dataset file."""

    CATEGORIES = "categories"
    CRITERIA = "criteria"
    NAME = "name"
    MANAGERS = "managers"
    AUDIO_FILES = "audio_files"
    ANALYSES = "analyses"
    TRANSCRIPTIONS = "transcriptions"
    ID = "id"
    MANAGER_ID = "manager_id"
    UPLOAD_DATE = "upload_date"
    STATUS = "status"
    ORIGINAL_NAME = "original_name"
    SEGMENTS = "segments"


class StatsKey(StrEnum):
    """Output keys of manager, company and audio statistics."""

    ID = "id"
    NAME = "name"
    TOTAL_AUDIOS = "total_audios"
    TOTAL_MANAGERS = "total_managers"
    AVERAGE_SCORE = "average_score"
    OVERALL_SCORE = "overall_score"
    CATEGORY_SCORES = "category_scores"
    CATEGORY_COUNTS = "category_counts"
    CRITERIA_SCORES = "criteria_scores"
    TALK_RATIO = "talk_ratio"
    AVERAGE_DURATION = "average_duration"
    DURATION = "duration"
    CATEGORY_MISTAKES = "category_mistakes"
    CLIENT_COMPLAINTS = "client_complaints"
    MANAGERS = "managers"
    FILE = "file"
    MANAGER_NAME = "manager_name"
    DATE = "date"
    COUNT = "count"


class TalkRatioKey(StrEnum):
    """Talk ratio output keys."""

    MANAGER = "manager"
    CUSTOMER = "customer"


class LogMessage(StrEnum):
    """Log message templates."""

    JSON_FIELD_INVALID = "Could not decode {} field: {}"
    JSON_FIELD_SHAPE = "Unexpected shape for {} field: {}"
    SEGMENTS_INVALID = "Could not decode transcript segments: {}"
    CUSTOM_DATES_INVALID = "Invalid custom date window {}..{}, ignoring filter"
    UNKNOWN_PERIOD = "Unknown period {!r}, ignoring filter"
    AGGREGATED_MANAGER = "Aggregated {} analyses for manager {}"
    SKIPPED_RECORDS = "Skipped {} records that are not completed or lack an analysis"
    LOADED_DATASET = "Loaded {} call records from {}"
    DATASET_MISSING = "Dataset file {} does not exist"
    FILE_MISSING = "File {} does not exist"
    DATASET_INVALID = "Dataset file {} is not valid JSON: {}"
    ORPHAN_ANALYSIS = "Analysis for unknown audio file {} ignored"
    SAVED_JSON = "Saved {} to {}"
    SAVED_CSV = "Saved {} rows to {}"
    AUDIO_NOT_FOUND = "Audio file {} not found"
    ANALYSIS_NOT_FOUND = "Analysis not found for audio file {}"
    ERROR_OCCURRED = "Error occurred: {}"


class CliHelp(StrEnum):
    """CLI help messages."""

    APP = "Call analytics aggregation tool"
    DATASET = "Path to the exported dataset JSON file."
    PERIOD = "Date window: today, 7d, 30d, custom or all."
    START_DATE = "Start date (YYYY-MM-DD) for the custom period."
    END_DATE = "End date (YYYY-MM-DD) for the custom period."
    OUTPUT = "Write the result to this JSON file instead of stdout."
    CSV = "Also write flattened CSV tables into this directory."
    MANAGER_IDS = "Restrict the volume series to these manager ids."
    VERBOSE = "Enable debug logging."
    MANAGERS_COMMAND = """Aggregate per-manager statistics for the selected date window.

Loads the dataset export, normalizes every completed analysis regardless of
the format it was stored in, and folds them into per-manager scores, mistake
and complaint tallies, talk ratios and average call durations."""
    COMPANY_COMMAND = "Aggregate a company-wide summary across all managers."
    VOLUME_COMMAND = "Count completed calls per day and per manager."
    HISTORY_COMMAND = "Average overall score per day for one manager."
    AUDIO_COMMAND = "Statistics for a single analyzed call."
    SCORE_COMMAND = "Validate an AI analysis result and print the storable analysis row."

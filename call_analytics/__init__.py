"""Call analytics aggregation package."""

from .aggregator import aggregate_manager
from .estimator import estimate_talk_ratio
from .filters import DateWindow, build_date_filter
from .models import AnalysisRow, CallRecord, CategoryCatalog, ManagerStats
from .normalizer import normalize_analysis
from .rollup import build_company_summary, build_manager_stats
from .storage import CallDataset, StatsStorage, load_dataset
from .timestamps import parse_timestamp

__all__ = [
    "AnalysisRow",
    "CallDataset",
    "CallRecord",
    "CategoryCatalog",
    "DateWindow",
    "ManagerStats",
    "StatsStorage",
    "aggregate_manager",
    "build_company_summary",
    "build_date_filter",
    "build_manager_stats",
    "estimate_talk_ratio",
    "load_dataset",
    "normalize_analysis",
    "parse_timestamp",
]

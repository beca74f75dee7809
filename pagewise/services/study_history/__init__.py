"""Study history consolidation and persistence."""

from pagewise.services.study_history.consolidator import HistoryConsolidator
from pagewise.services.study_history.models import (
    RECORD_KIND_ANALYSIS,
    CumulativeRecord,
    RecordNotFoundError,
    StaleSessionError,
    StoreUnavailableError,
    StudyHistoryError,
    build_cumulative_record,
    build_page_analyses_map,
    build_record_metadata,
)
from pagewise.services.study_history.session_cache import SessionRecordCache
from pagewise.services.study_history.storage import (
    MinioStudyHistoryStore,
    StudyHistoryStore,
    get_study_history_store,
)

__all__ = [
    # Consolidation
    "HistoryConsolidator",
    "CumulativeRecord",
    "build_cumulative_record",
    "build_page_analyses_map",
    "build_record_metadata",
    "RECORD_KIND_ANALYSIS",
    # Storage
    "StudyHistoryStore",
    "MinioStudyHistoryStore",
    "get_study_history_store",
    "SessionRecordCache",
    # Exceptions
    "StudyHistoryError",
    "StoreUnavailableError",
    "RecordNotFoundError",
    "StaleSessionError",
]

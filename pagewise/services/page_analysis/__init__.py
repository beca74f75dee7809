"""Page analysis: extraction, LLM client, retry and orchestration."""

from pagewise.services.page_analysis.client import (
    AnalysisClient,
    PageAnalysisPayload,
    QuestionPayload,
    get_analysis_client,
)
from pagewise.services.page_analysis.extractor import (
    PageExtractor,
    count_pages,
    extract_page_range,
)
from pagewise.services.page_analysis.models import (
    BatchResult,
    ComprehensiveResult,
    Importance,
    OutputLanguage,
    PageAnalysis,
    PageAnalysisError,
    PageAnalysisFailedError,
    PageIndexError,
    PageState,
    RateLimitedError,
    RequestFailedError,
    StudyPoint,
)
from pagewise.services.page_analysis.orchestrator import PageOrchestrator
from pagewise.services.page_analysis.retry import retry_with_backoff

__all__ = [
    # Orchestration
    "PageOrchestrator",
    "retry_with_backoff",
    # Collaborators
    "AnalysisClient",
    "get_analysis_client",
    "PageExtractor",
    "extract_page_range",
    "count_pages",
    # Data models
    "PageAnalysis",
    "StudyPoint",
    "BatchResult",
    "ComprehensiveResult",
    "PageAnalysisPayload",
    "QuestionPayload",
    # Enums
    "Importance",
    "OutputLanguage",
    "PageState",
    # Exceptions
    "PageAnalysisError",
    "RateLimitedError",
    "RequestFailedError",
    "PageAnalysisFailedError",
    "PageIndexError",
]

"""Pydantic schemas used by the FastAPI application."""

from .session import (
    BatchResponse,
    ComprehensiveResponse,
    CumulativeRecordResponse,
    NavigateResponse,
    NotificationListResponse,
    NotificationSchema,
    OpenDocumentRequest,
    PageAnalysisSchema,
    ProgressSchema,
    QuestionSchema,
    QuizRequest,
    QuizResponse,
    SessionResponse,
    StudyPointSchema,
)

__all__ = [
    "BatchResponse",
    "ComprehensiveResponse",
    "CumulativeRecordResponse",
    "NavigateResponse",
    "NotificationListResponse",
    "NotificationSchema",
    "OpenDocumentRequest",
    "PageAnalysisSchema",
    "ProgressSchema",
    "QuestionSchema",
    "QuizRequest",
    "QuizResponse",
    "SessionResponse",
    "StudyPointSchema",
]

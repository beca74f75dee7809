"""Pydantic schemas for the document session API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pagewise.services.page_analysis import OutputLanguage, PageAnalysis
from pagewise.services.quiz import Difficulty


# =============================================================================
# Page Analysis Schemas
# =============================================================================


class StudyPointSchema(BaseModel):
    """A study point extracted from a page."""

    title: str = Field(..., description="Short title of the study point")
    description: str = Field("", description="Explanation of the point")
    importance: str = Field("medium", description="high, medium or low")
    relevance: str = Field("", description="Exam relevance of the point")


class PageAnalysisSchema(BaseModel):
    """Analysis result for a single page."""

    page_number: int = Field(..., ge=1, description="1-based page number")
    key_points: list[str] = Field(default_factory=list, description="Key points on the page")
    study_points: list[StudyPointSchema] = Field(
        default_factory=list, description="Structured study points"
    )
    summary: str = Field("", description="Page summary")
    relevance: str = Field("", description="Exam relevance of the page")
    categories: list[str] = Field(default_factory=list, description="Subject categories")
    is_analyzed: bool = Field(True, description="Whether the analysis completed")

    @classmethod
    def from_analysis(cls, analysis: PageAnalysis) -> PageAnalysisSchema:
        return cls.model_validate(analysis.to_dict())

    def to_analysis(self) -> PageAnalysis:
        return PageAnalysis.from_dict(self.model_dump())


# =============================================================================
# Session Schemas
# =============================================================================


class OpenDocumentRequest(BaseModel):
    """Request body for opening a document."""

    owner: str = Field(..., min_length=1, description="Owner of the session")
    file_name: str = Field(..., min_length=1, description="Original file name")
    file_size: int = Field(..., ge=0, description="File size in bytes")
    total_pages: int = Field(..., ge=1, description="Number of pages in the document")
    full_text: str = Field(..., description="OCR text with page markers")
    language: OutputLanguage = Field(OutputLanguage.ENGLISH, description="Output language")
    record_id: str | None = Field(None, description="Existing study history record id")
    page_analyses: list[PageAnalysisSchema] = Field(
        default_factory=list, description="Previously completed page analyses"
    )


class ProgressSchema(BaseModel):
    """Completed pages against document size."""

    completed: int = Field(..., description="Number of completed pages")
    total: int = Field(..., description="Total pages")
    percentage: float = Field(..., description="Completion percentage")


class SessionResponse(BaseModel):
    """State of an open document session."""

    owner: str = Field(..., description="Owner of the session")
    file_name: str = Field(..., description="Document file name")
    file_size: int = Field(..., description="Document size in bytes")
    record_id: str | None = Field(None, description="Study history record id, once created")
    cursor: int = Field(..., description="Currently viewed page")
    progress: ProgressSchema = Field(..., description="Analysis progress")
    page_states: dict[int, str] = Field(
        default_factory=dict, description="Non-default page states by page number"
    )
    failures: dict[int, str] = Field(
        default_factory=dict, description="Failure reasons by page number"
    )


class NavigateResponse(BaseModel):
    """Result of moving the cursor."""

    cursor: int = Field(..., description="New cursor position")
    analysis_started: bool = Field(..., description="Whether a background analysis started")


class BatchResponse(BaseModel):
    """Outcome of a sequential batch run."""

    completed: list[int] = Field(default_factory=list, description="Pages completed by this run")
    failed_page: int | None = Field(None, description="Page that halted the run")
    error: str | None = Field(None, description="Reason the run halted")
    succeeded: bool = Field(..., description="Whether the run finished without a failure")
    progress: ProgressSchema = Field(..., description="Analysis progress after the run")


class ComprehensiveResponse(BaseModel):
    """Outcome of a parallel analysis pass."""

    page_analyses: list[PageAnalysisSchema] = Field(default_factory=list)
    failed_pages: list[int] = Field(default_factory=list)
    overall_summary: str = Field("", description="One-line summary of the pass")
    total_key_points: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class CumulativeRecordResponse(BaseModel):
    """Merged view of every completed page."""

    record_id: str | None = Field(None, description="Study history record id")
    key_points: list[str] = Field(default_factory=list)
    study_points: list[StudyPointSchema] = Field(default_factory=list)
    summary: str = Field("")
    relevance: str = Field("")
    categories: list[str] = Field(default_factory=list)
    main_topic: str = Field("")
    page_numbers: list[int] = Field(default_factory=list)


class NotificationSchema(BaseModel):
    """User-facing notification."""

    level: str = Field(..., description="info, success, warning or error")
    message: str = Field(..., description="Notification text")
    page_number: int | None = Field(None, description="Page the notification refers to")
    created_at: str = Field(..., description="ISO timestamp")


class NotificationListResponse(BaseModel):
    """Notifications drained from a session."""

    notifications: list[NotificationSchema] = Field(default_factory=list)


# =============================================================================
# Quiz Schemas
# =============================================================================


class QuizRequest(BaseModel):
    """Request body for generating a quiz."""

    start_page: int = Field(..., ge=1, description="First page of the range")
    end_page: int = Field(..., ge=1, description="Last page of the range")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="Quiz difficulty")
    language: OutputLanguage | None = Field(None, description="Defaults to the session language")


class QuestionSchema(BaseModel):
    """A quiz question."""

    question: str
    options: list[str]
    answer: str = Field(..., description="Answer tag A-D")
    type: str = Field("mcq", description="mcq or assertion_reason")
    explanation: str = ""
    difficulty: str = "medium"


class QuizResponse(BaseModel):
    """Generated quiz."""

    questions: list[QuestionSchema] = Field(default_factory=list)
    summary: str = ""
    key_points: list[str] = Field(default_factory=list)
    difficulty: str = "medium"
    total_questions: int = 0
    page_range: dict[str, int] = Field(default_factory=dict)
    sanitized_count: int = 0

    @classmethod
    def from_result(cls, data: dict[str, Any]) -> QuizResponse:
        return cls.model_validate(data)

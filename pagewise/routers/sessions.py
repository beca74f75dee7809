"""API endpoints for document sessions, page analysis and quizzes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pagewise.schemas.session import (
    BatchResponse,
    ComprehensiveResponse,
    CumulativeRecordResponse,
    NavigateResponse,
    NotificationListResponse,
    NotificationSchema,
    OpenDocumentRequest,
    PageAnalysisSchema,
    ProgressSchema,
    QuizRequest,
    QuizResponse,
    SessionResponse,
    StudyPointSchema,
)
from pagewise.services.page_analysis import (
    PageAnalysisFailedError,
    PageIndexError,
    PageOrchestrator,
    RequestFailedError,
)
from pagewise.services.quiz import InvalidPageRangeError, NoAnalyzedPagesError
from pagewise.services.session import DocumentSession
from pagewise.services.workspace import (
    SessionNotFoundError,
    StudyWorkspace,
    get_study_workspace,
)

router = APIRouter(prefix="/sessions", tags=["Sessions"])
logger = logging.getLogger(__name__)


def get_workspace() -> StudyWorkspace:
    return get_study_workspace()


def _orchestrator(workspace: StudyWorkspace, owner: str) -> PageOrchestrator:
    try:
        return workspace.orchestrator_for(owner)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


def _progress(session: DocumentSession) -> ProgressSchema:
    return ProgressSchema(**session.progress().to_dict())


def _session_response(session: DocumentSession) -> SessionResponse:
    return SessionResponse(
        owner=session.owner,
        file_name=session.key.file_name,
        file_size=session.key.file_size,
        record_id=session.record_id,
        cursor=session.cursor,
        progress=_progress(session),
        page_states={n: state.value for n, state in sorted(session.states.items())},
        failures=dict(sorted(session.failures.items())),
    )


def _bad_page(e: PageIndexError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _failed(e: PageAnalysisFailedError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": e.message, "page_number": e.page_number, **e.details},
    )


# =============================================================================
# Session lifecycle
# =============================================================================


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_document(
    payload: OpenDocumentRequest,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> SessionResponse:
    """Open a document, replacing the owner's active session."""
    try:
        orchestrator = await workspace.open_document(
            owner=payload.owner,
            file_name=payload.file_name,
            file_size=payload.file_size,
            total_pages=payload.total_pages,
            full_text=payload.full_text,
            language=payload.language,
            record_id=payload.record_id,
            page_analyses=[p.to_analysis() for p in payload.page_analyses],
        )
    except PageIndexError as e:
        raise _bad_page(e) from e
    return _session_response(orchestrator.session)


@router.get("/{owner}", response_model=SessionResponse)
async def get_session(
    owner: str,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> SessionResponse:
    return _session_response(_orchestrator(workspace, owner).session)


@router.delete("/{owner}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    owner: str,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> None:
    try:
        workspace.close(owner)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


# =============================================================================
# Page analysis
# =============================================================================


@router.post("/{owner}/pages/{page_number}/analyze", response_model=PageAnalysisSchema)
async def analyze_page(
    owner: str,
    page_number: int,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> PageAnalysisSchema:
    """Analyze one page, or retry a failed one."""
    orchestrator = _orchestrator(workspace, owner)
    try:
        analysis = await orchestrator.analyze_page(page_number)
    except PageIndexError as e:
        raise _bad_page(e) from e
    except PageAnalysisFailedError as e:
        raise _failed(e) from e
    return PageAnalysisSchema.from_analysis(analysis)


@router.get("/{owner}/pages/{page_number}", response_model=PageAnalysisSchema)
async def get_page(
    owner: str,
    page_number: int,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> PageAnalysisSchema:
    session = _orchestrator(workspace, owner).session
    try:
        session.check_page(page_number)
    except PageIndexError as e:
        raise _bad_page(e) from e
    analysis = session.completed_analysis(page_number)
    if analysis is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Page {page_number} has not been analyzed",
        )
    return PageAnalysisSchema.from_analysis(analysis)


@router.post("/{owner}/navigate/{page_number}", response_model=NavigateResponse)
async def navigate(
    owner: str,
    page_number: int,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> NavigateResponse:
    """Move the cursor; an unanalyzed page starts analyzing in the background."""
    orchestrator = _orchestrator(workspace, owner)
    try:
        task = orchestrator.navigate(page_number)
    except PageIndexError as e:
        raise _bad_page(e) from e
    return NavigateResponse(cursor=orchestrator.session.cursor, analysis_started=task is not None)


@router.post("/{owner}/analyze-all", response_model=BatchResponse)
async def analyze_all(
    owner: str,
    start: int | None = Query(None, ge=1, description="First page, defaults to 1"),
    end: int | None = Query(None, ge=1, description="Last page, defaults to the last page"),
    workspace: StudyWorkspace = Depends(get_workspace),
) -> BatchResponse:
    """Analyze pending pages one at a time, stopping at the first persistent failure."""
    orchestrator = _orchestrator(workspace, owner)
    session = orchestrator.session
    try:
        result = await orchestrator.analyze_range(start or 1, end or session.total_pages)
    except PageIndexError as e:
        raise _bad_page(e) from e
    return BatchResponse(
        completed=result.completed,
        failed_page=result.failed_page,
        error=result.error,
        succeeded=result.succeeded,
        progress=_progress(session),
    )


@router.post("/{owner}/analyze-comprehensive", response_model=ComprehensiveResponse)
async def analyze_comprehensive(
    owner: str,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> ComprehensiveResponse:
    """Analyze every pending page in parallel and save once at the end."""
    result = await _orchestrator(workspace, owner).analyze_comprehensive()
    return ComprehensiveResponse.model_validate(result.to_dict())


# =============================================================================
# Study history and notifications
# =============================================================================


@router.get("/{owner}/record", response_model=CumulativeRecordResponse)
async def get_record(
    owner: str,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> CumulativeRecordResponse:
    session = _orchestrator(workspace, owner).session
    record = workspace.consolidator.merged_record(session)
    return CumulativeRecordResponse(
        record_id=record.record_id,
        key_points=record.key_points,
        study_points=[StudyPointSchema(**p.to_dict()) for p in record.study_points],
        summary=record.summary,
        relevance=record.relevance,
        categories=record.categories,
        main_topic=record.main_topic,
        page_numbers=record.page_numbers,
    )


@router.get("/{owner}/notifications", response_model=NotificationListResponse)
async def drain_notifications(
    owner: str,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> NotificationListResponse:
    session = _orchestrator(workspace, owner).session
    return NotificationListResponse(
        notifications=[NotificationSchema(**n.to_dict()) for n in session.notifications.drain()]
    )


# =============================================================================
# Quiz
# =============================================================================


@router.post("/{owner}/quiz", response_model=QuizResponse)
async def generate_quiz(
    owner: str,
    payload: QuizRequest,
    workspace: StudyWorkspace = Depends(get_workspace),
) -> QuizResponse:
    """Generate questions from the analyzed pages of a range."""
    session = _orchestrator(workspace, owner).session
    try:
        result = await workspace.quiz.generate_for_range(
            session,
            payload.start_page,
            payload.end_page,
            difficulty=payload.difficulty,
            language=payload.language,
        )
    except InvalidPageRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except NoAnalyzedPagesError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except RequestFailedError as e:
        logger.error("Quiz generation failed for %s: %s", owner, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return QuizResponse.from_result(result.to_dict())

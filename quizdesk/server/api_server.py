"""FastAPI server exposing the admin and student endpoints."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from quizdesk.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quizdesk.constants.message_constants import (
    ADMIN_ONLY_MESSAGE,
    LOGIN_REQUIRED_MESSAGE,
    STUDENT_ONLY_MESSAGE,
    SUBMISSION_FAILED_MESSAGE,
)
from quizdesk.constants.network_constants import (
    API_LOG_LEVEL,
    AUTH_COOKIE_MAX_AGE_SECONDS,
    AUTH_COOKIE_NAME,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from quizdesk.constants.quiz_constants import DEFAULT_TIMER_DURATION_MINUTES
from quizdesk.core.errors import (
    AccessDeniedError,
    AuthenticationError,
    DuplicateAccountError,
    NotFoundError,
    PersistenceError,
    QuizDeskError,
    SessionStateError,
    ValidationError,
)
from quizdesk.core.markdown_math_renderer import renderer
from quizdesk.core.models import (
    Question,
    QuestionDraft,
    QuizResult,
    Role,
    Subject,
    SubjectDraft,
    User,
)
from quizdesk.core.quiz_manager import CompletedQuiz, QuizManager
from quizdesk.core.services.dashboard_stats import AdminDashboardStats, StudentDashboardStats
from quizdesk.core.services.quiz_session import QuizSession, SessionState
from quizdesk.core.services.result_summary import percentage
from quizdesk.utils.time_format import format_countdown

logger = logging.getLogger(__name__)

# Most specific classes first; the first isinstance match wins.
_ERROR_STATUS: tuple[tuple[type[QuizDeskError], int], ...] = (
    (DuplicateAccountError, 409),
    (ValidationError, 422),
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (AccessDeniedError, 403),
    (SessionStateError, 409),
    (PersistenceError, 503),
)


class LoginPayload(BaseModel):
    email: str


class StudentPayload(BaseModel):
    name: str
    email: str


class AccessPayload(BaseModel):
    subject_ids: list[str] = Field(default_factory=list)


class SubjectPayload(BaseModel):
    name: str
    description: str = ""
    timer_enabled: bool = False
    timer_duration: int = DEFAULT_TIMER_DURATION_MINUTES

    def to_draft(self) -> SubjectDraft:
        return SubjectDraft(
            name=self.name,
            description=self.description,
            timer_enabled=self.timer_enabled,
            timer_duration=self.timer_duration,
        )


class QuestionPayload(BaseModel):
    question_text: str
    options: list[str]
    correct_answer: str
    subject_id: str | None = None

    def to_draft(self, subject_id: str) -> QuestionDraft:
        return QuestionDraft(
            subject_id=subject_id,
            question_text=self.question_text,
            options=tuple(self.options),
            correct_answer=self.correct_answer,
        )


class BulkQuestionsPayload(BaseModel):
    """Raw JSON text pasted by the administrator."""

    content: str


class AnswerPayload(BaseModel):
    selected_option: str


def _error_status(exc: QuizDeskError) -> int:
    return next((status for error_type, status in _ERROR_STATUS if isinstance(exc, error_type)), 400)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _user_payload(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "subjects_access": sorted(user.subjects_access),
    }


def _subject_payload(subject: Subject) -> dict[str, object]:
    return asdict(subject)


def _question_payload(question: Question) -> dict[str, object]:
    payload = asdict(question)
    payload["options"] = list(question.options)
    return payload


def _result_payload(result: QuizResult) -> dict[str, object]:
    payload = asdict(result)
    payload["date"] = _iso(result.date)
    return payload


def _completed_payload(completed: CompletedQuiz) -> dict[str, object]:
    summary = completed.summary
    payload: dict[str, object] = {
        "result": _result_payload(completed.result),
        "subject_name": completed.subject_name,
        "score": summary.score,
        "total_questions": summary.total_questions,
        "incorrect": summary.incorrect,
        "percentage": summary.percentage,
        "feedback": {
            "tier": summary.feedback.key,
            "title": summary.feedback.title,
            "message": summary.feedback.message,
            "passed": summary.feedback.passed,
        },
        "time_taken": summary.time_taken,
        "time_taken_display": summary.time_taken_display,
    }
    if completed.review is not None:
        payload["review"] = [
            {
                "question_id": item.question_id,
                "question_text": item.question_text,
                "selected_option": item.selected_option,
                "correct_answer": item.correct_answer,
                "answered": item.answered,
                "is_correct": item.is_correct,
                "options": [
                    {"text": option.text, "status": option.status.value, "selected": option.selected}
                    for option in item.options
                ],
            }
            for item in completed.review
        ]
    return payload


def _session_payload(session: QuizSession) -> dict[str, object]:
    payload: dict[str, object] = {
        "state": session.state.value,
        "attempt_id": session.attempt_id,
        "subject": _subject_payload(session.subject),
        "question_count": session.question_count,
        "current_index": session.current_index,
        "is_last_question": session.is_last_question,
        "answered_count": len(session.answers),
        "timed": session.is_timed,
        "remaining_seconds": session.remaining_seconds,
        "remaining_display": format_countdown(session.remaining_seconds),
        "started_at": _iso(session.started_at) if session.started_at else None,
        "submission_error": SUBMISSION_FAILED_MESSAGE if session.submission_error else None,
    }
    if session.state is not SessionState.COMPLETED:
        question = session.current_question
        # The correct answer stays on the server until the attempt is submitted.
        payload["question"] = {
            "id": question.id,
            "question_text": question.question_text,
            "options": list(question.options),
            "selected_option": session.answers.get(question.id),
            **renderer.render_question(question),
        }
    return payload


def _admin_stats_payload(stats: AdminDashboardStats) -> dict[str, object]:
    return {
        "student_count": stats.student_count,
        "subject_count": stats.subject_count,
        "total_attempts": stats.total_attempts,
        "subject_performance": [asdict(item) for item in stats.subject_performance],
    }


def _student_stats_payload(stats: StudentDashboardStats) -> dict[str, object]:
    return {
        "recent_quizzes": [_result_payload(result) for result in stats.recent_quizzes],
        "subjects_taken": stats.subjects_taken,
        "average_score": stats.average_score,
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        # No countdown may outlive the event loop.
        quiz_manager.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} API",
        description=APP_ABOUT_TEXT,
        version=APP_VERSION,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.exception_handler(QuizDeskError)
    async def handle_quizdesk_error(_request: Request, exc: QuizDeskError) -> JSONResponse:
        status = _error_status(exc)
        if status >= 500:
            logger.warning("Request failed: %s", exc)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    async def current_user(request: Request, manager: QuizManager = Depends(quiz_manager_dep)) -> User:
        user = await manager.restore_user(request.cookies.get(AUTH_COOKIE_NAME))
        if user is None:
            raise HTTPException(status_code=401, detail=LOGIN_REQUIRED_MESSAGE)
        return user

    async def current_admin(user: User = Depends(current_user)) -> User:
        if user.role is not Role.ADMIN:
            raise HTTPException(status_code=403, detail=ADMIN_ONLY_MESSAGE)
        return user

    async def current_student(user: User = Depends(current_user)) -> User:
        if user.role is not Role.STUDENT:
            raise HTTPException(status_code=403, detail=STUDENT_ONLY_MESSAGE)
        return user

    @app.get("/health")
    async def health_check() -> dict[str, object]:
        return {"status": "healthy", "version": APP_VERSION}

    # --- Auth ---

    @app.post("/auth/login")
    async def login(
        payload: LoginPayload,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session, user = await manager.login(payload.email)
        response.set_cookie(
            key=AUTH_COOKIE_NAME,
            value=session.token,
            max_age=AUTH_COOKIE_MAX_AGE_SECONDS,
            samesite="lax",
            httponly=True,
        )
        return {"user": _user_payload(user)}

    @app.post("/auth/logout")
    async def logout(
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        token = request.cookies.get(AUTH_COOKIE_NAME)
        user = await manager.restore_user(token)
        manager.logout(token, user)
        response.delete_cookie(AUTH_COOKIE_NAME)
        return {"logged_out": True}

    @app.get("/auth/me")
    async def me(user: User = Depends(current_user)) -> dict[str, object]:
        return {"user": _user_payload(user)}

    # --- Admin ---

    @app.get("/admin/dashboard")
    async def admin_dashboard(
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _admin_stats_payload(await manager.admin_dashboard(admin))

    @app.get("/admin/students")
    async def list_students(
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_user_payload(student) for student in await manager.list_students(admin)]

    @app.post("/admin/students", status_code=201)
    async def enroll_student(
        payload: StudentPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _user_payload(await manager.enroll_student(admin, payload.name, payload.email))

    @app.delete("/admin/students/{user_id}", status_code=204)
    async def remove_student(
        user_id: str,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        await manager.remove_student(admin, user_id)
        return Response(status_code=204)

    @app.put("/admin/students/{user_id}/access")
    async def update_student_access(
        user_id: str,
        payload: AccessPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _user_payload(await manager.update_student_access(admin, user_id, payload.subject_ids))

    @app.get("/admin/subjects")
    async def list_subjects(
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_subject_payload(subject) for subject in await manager.list_subjects(admin)]

    @app.post("/admin/subjects", status_code=201)
    async def create_subject(
        payload: SubjectPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _subject_payload(await manager.create_subject(admin, payload.to_draft()))

    @app.put("/admin/subjects/{subject_id}")
    async def update_subject(
        subject_id: str,
        payload: SubjectPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _subject_payload(await manager.update_subject(admin, subject_id, payload.to_draft()))

    @app.delete("/admin/subjects/{subject_id}", status_code=204)
    async def delete_subject(
        subject_id: str,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        await manager.delete_subject(admin, subject_id)
        return Response(status_code=204)

    @app.get("/admin/subjects/{subject_id}/questions")
    async def list_questions(
        subject_id: str,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        subject, questions = await manager.get_subject_questions(admin, subject_id)
        return {
            "subject": _subject_payload(subject),
            "questions": [_question_payload(question) for question in questions],
        }

    @app.post("/admin/subjects/{subject_id}/questions", status_code=201)
    async def create_question(
        subject_id: str,
        payload: QuestionPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        question = await manager.create_question(admin, payload.to_draft(subject_id))
        return _question_payload(question)

    @app.post("/admin/subjects/{subject_id}/questions/bulk", status_code=201)
    async def import_questions(
        subject_id: str,
        payload: BulkQuestionsPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        created = await manager.import_questions(admin, subject_id, payload.content)
        return {
            "imported": len(created),
            "questions": [_question_payload(question) for question in created],
        }

    @app.put("/admin/questions/{question_id}")
    async def update_question(
        question_id: str,
        payload: QuestionPayload,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        if payload.subject_id is None:
            raise HTTPException(status_code=422, detail="subject_id is required when editing a question.")
        question = await manager.update_question(admin, question_id, payload.to_draft(payload.subject_id))
        return _question_payload(question)

    @app.delete("/admin/questions/{question_id}", status_code=204)
    async def delete_question(
        question_id: str,
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        await manager.delete_question(admin, question_id)
        return Response(status_code=204)

    @app.get("/admin/results")
    async def list_results(
        admin: User = Depends(current_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_result_payload(result) for result in await manager.list_results(admin)]

    # --- Student ---

    @app.get("/student/dashboard")
    async def student_dashboard(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        subjects = await manager.student_subjects(student)
        stats = await manager.student_dashboard(student)
        return {
            "subjects": [_subject_payload(subject) for subject in subjects],
            **_student_stats_payload(stats),
        }

    @app.get("/student/subjects")
    async def student_subjects(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_subject_payload(subject) for subject in await manager.student_subjects(student)]

    @app.get("/student/history")
    async def quiz_history(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        history = await manager.quiz_history(student)
        payloads = []
        for result in history:
            payload = _result_payload(result)
            payload["percentage"] = percentage(result.score, result.total_questions)
            payloads.append(payload)
        return payloads

    @app.post("/student/quiz/{subject_id}/start", status_code=201)
    async def start_quiz(
        subject_id: str,
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = await manager.start_quiz(student, subject_id)
        return _session_payload(session)

    @app.get("/student/quiz")
    async def get_quiz(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _session_payload(manager.get_session(student))

    @app.post("/student/quiz/answer")
    async def select_answer(
        payload: AnswerPayload,
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.get_active_session(student)
        session.select_answer(payload.selected_option)
        return _session_payload(session)

    @app.post("/student/quiz/next")
    async def next_question(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.get_active_session(student)
        session.next_question()
        return _session_payload(session)

    @app.post("/student/quiz/previous")
    async def previous_question(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.get_active_session(student)
        session.previous_question()
        return _session_payload(session)

    @app.post("/student/quiz/submit")
    async def submit_quiz(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            completed = await manager.submit_quiz(student)
        except PersistenceError as exc:
            # The session already logged the store error; students get the retry prompt instead.
            raise HTTPException(status_code=503, detail=SUBMISSION_FAILED_MESSAGE) from exc
        return _completed_payload(completed)

    @app.delete("/student/quiz", status_code=204)
    async def abandon_quiz(
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        manager.abandon_quiz(student)
        return Response(status_code=204)

    @app.get("/student/quiz/result")
    async def quiz_result(
        review: bool = False,
        student: User = Depends(current_student),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _completed_payload(manager.completed_quiz(student, include_review=review))

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API on the current thread until interrupted."""
    _build_server(quiz_manager, host, port).run()


def _build_server(quiz_manager: QuizManager, host: str, port: int) -> uvicorn.Server:
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=API_LOG_LEVEL)
    return uvicorn.Server(config)

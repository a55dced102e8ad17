import logging
import time
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from quizflow.application.service import StudyService
from quizflow.consts import VERSION
from quizflow.domain.models import Card, StudyMode, Subject
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import CardStat

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("quizflow.server")

_service: StudyService | None = None


def get_service() -> StudyService:
    global _service
    if _service is None:
        from quizflow.application.config import resolve_config
        from quizflow.application.factory import build_study_service

        _service = build_study_service(resolve_config())
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Quizflow Server v{VERSION} starting up...")
    yield
    # Shutdown
    if _service is not None:
        await _service.close()
    logger.info("Quizflow Server shutting down...")


app = FastAPI(
    title="Quizflow Server",
    description="Review scheduling and study-progress sync for the quizflow UI.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardModel(BaseModel):
    id: str
    term: str = ""
    definition: str = ""


class SubjectModel(BaseModel):
    id: str
    title: str = ""
    cards: list[CardModel] = Field(default_factory=list)

    def to_domain(self) -> Subject:
        return Subject(
            id=self.id,
            title=self.title,
            cards=[Card(c.id, c.term, c.definition) for c in self.cards],
        )


class SubjectsRequest(BaseModel):
    subjects: list[SubjectModel]


class DueRequest(SubjectsRequest):
    daily: bool = False  # honour today's completed review session


class OutcomeRequest(BaseModel):
    card_id: str
    correct: bool


class CardStatResponse(BaseModel):
    card_id: str
    correct: int
    incorrect: int
    streak: int
    difficulty: str
    interval: int | None
    next_review: datetime | None
    last_reviewed: datetime | None

    @classmethod
    def from_stat(cls, stat: CardStat) -> "CardStatResponse":
        return cls(
            card_id=stat.card_id,
            correct=stat.correct,
            incorrect=stat.incorrect,
            streak=stat.streak,
            difficulty=stat.difficulty.value,
            interval=stat.interval,
            next_review=stat.next_review,
            last_reviewed=stat.last_reviewed,
        )


class ProgressRequest(BaseModel):
    progress: dict[str, Any] = Field(default_factory=dict)
    completed: bool = False


class SessionResponse(BaseModel):
    subject_id: str
    mode: StudyMode
    progress: dict[str, Any]
    completed: bool
    updated_at: datetime | None

    @classmethod
    def from_session(cls, session: StudySession) -> "SessionResponse":
        return cls(
            subject_id=session.subject_id,
            mode=session.mode,
            progress=session.progress,
            completed=session.completed,
            updated_at=session.updated_at,
        )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post("/outcomes", response_model=CardStatResponse)
async def record_outcome(req: OutcomeRequest, service: StudyService = Depends(get_service)):
    """Record one correct/incorrect judgment for a card."""
    stat = await service.record_outcome(req.card_id, req.correct)
    if stat is None:
        raise HTTPException(status_code=503, detail="Outcome could not be recorded")
    return CardStatResponse.from_stat(stat)


@app.post("/due")
async def due_cards(req: DueRequest, service: StudyService = Depends(get_service)):
    subjects = [s.to_domain() for s in req.subjects]
    if req.daily:
        queue = await service.daily_review_queue(subjects)
    else:
        queue = await service.due_cards(subjects)
    return {
        "cards": [
            {"subject_id": c.subject_id, "card_id": c.card_id, "subject_title": c.subject_title}
            for c in queue
        ]
    }


@app.get("/streak")
async def get_streak(service: StudyService = Depends(get_service)):
    return {"streak": await service.compute_streak()}


@app.get("/calendar")
async def get_calendar(start: date, end: date, service: StudyService = Depends(get_service)):
    return {"days": await service.compute_calendar(start, end)}


@app.get("/calendar/recent")
async def get_recent_calendar(days: int = 84, service: StudyService = Depends(get_service)):
    records = await service.recent_calendar(days=days)
    return {"days": [{"date": r.date, "count": r.count} for r in records]}


@app.get("/sessions/{subject_id}/{mode}")
async def load_session(
    subject_id: str, mode: StudyMode, service: StudyService = Depends(get_service)
):
    session = await service.load_initial(subject_id, mode)
    return {"session": SessionResponse.from_session(session) if session else None}


@app.put("/sessions/{subject_id}/{mode}", response_model=SessionResponse)
async def save_session(
    subject_id: str,
    mode: StudyMode,
    req: ProgressRequest,
    service: StudyService = Depends(get_service),
):
    session = service.save_progress(subject_id, mode, req.progress, req.completed)
    return SessionResponse.from_session(session)


@app.delete("/sessions/{subject_id}/{mode}")
async def clear_session(
    subject_id: str, mode: StudyMode, service: StudyService = Depends(get_service)
):
    await service.clear(subject_id, mode)
    return {"ok": True}


@app.post("/sessions/progress")
async def session_progress(req: SubjectsRequest, service: StudyService = Depends(get_service)):
    """Completion state and percent done of every subject in every started mode."""
    states = await service.completion_states([s.to_domain() for s in req.subjects])
    return {
        subject_id: {
            mode.value: {
                "status": state.status,
                "percent": state.percent,
                "updated_at": state.updated_at.isoformat() if state.updated_at else None,
            }
            for mode, state in modes.items()
        }
        for subject_id, modes in states.items()
    }


@app.post("/stats/reset")
async def reset_stats(req: SubjectModel, service: StudyService = Depends(get_service)):
    ok = await service.reset_stats(req.to_domain())
    if not ok:
        raise HTTPException(status_code=503, detail="Statistics could not be reset")
    return {"ok": True}


@app.post("/stats/overview")
async def stats_overview(req: SubjectsRequest, service: StudyService = Depends(get_service)):
    try:
        overview = await service.overview([s.to_domain() for s in req.subjects])
    except Exception as e:
        logger.error(f"Overview failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {
        "total_cards": overview.total_cards,
        "total_attempts": overview.total_attempts,
        "accuracy": overview.accuracy,
        "distribution": {k.value: v for k, v in overview.distribution.items()},
        "subjects": [
            {
                "subject_id": s.subject_id,
                "title": s.title,
                "mastered": s.mastered,
                "mastered_percent": s.mastered_percent,
                "accuracy": s.accuracy,
            }
            for s in overview.subjects
        ],
    }


@app.post("/stats/wrong-notes")
async def wrong_notes(
    req: SubjectsRequest,
    sort_by: Literal["incorrect", "ratio"] = "incorrect",
    subject_id: str | None = None,
    service: StudyService = Depends(get_service),
):
    entries = await service.wrong_notes(
        [s.to_domain() for s in req.subjects], sort_by=sort_by, subject_id=subject_id
    )
    return {
        "cards": [
            {
                "subject_id": e.subject_id,
                "card_id": e.card_id,
                "term": e.term,
                "definition": e.definition,
                "correct": e.correct,
                "incorrect": e.incorrect,
                "difficulty": e.difficulty.value,
            }
            for e in entries
        ]
    }

"""
GameSession model - one quiz attempt by a student.

Sessions are created and finalized by the quiz-taking flow. Only
sessions whose status is ``completed`` take part in statistics and
exports. The per-question answer breakdown is kept as a JSON list.
"""

import uuid
import json
from sqlalchemy import Column, Text, Integer, Float, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from quiz_admin.database import Base, utc_now

COMPLETED = "completed"


class GameSession(Base):
    """
    SQLAlchemy model for the game_sessions table.

    ``user_id`` is a weak reference to the owning user: it is used only
    for lookups and joins and is never cascaded.
    """
    __tablename__ = "game_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique session identifier")
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                     doc="Owning user")
    level = Column(Integer, nullable=False, default=1,
                   doc="Quiz level, 1..N")
    score = Column(Integer, nullable=False, default=0,
                   doc="Correct answers, 0..total_questions")
    total_questions = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0,
                        doc="score / total_questions * 100, derived when the session is finalized")
    time_taken_seconds = Column(Integer, nullable=False, default=0)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default="in_progress",
                    doc="completed | abandoned | in_progress")
    accuracy = Column(Float, nullable=True,
                      doc="Performance: accuracy percentage")
    average_time_per_question = Column(Float, nullable=True,
                                       doc="Performance: mean seconds per question")
    feedback_text = Column(Text, nullable=True)
    answers = Column(Text, nullable=False, default="[]",
                     doc="Per-question answers as a JSON list")
    created_at = Column(DateTime, nullable=False, default=utc_now)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("ix_game_sessions_user_id", "user_id"),
        Index("ix_game_sessions_status_level", "status", "level"),
        Index("ix_game_sessions_created_at", "created_at"),
    )

    @property
    def answers_list(self):
        """Parse answers JSON string to a list."""
        if isinstance(self.answers, list):
            return self.answers
        try:
            parsed = json.loads(self.answers) if self.answers else []
        except (json.JSONDecodeError, TypeError):
            return []
        return parsed if isinstance(parsed, list) else []

    def detailed_answers(self):
        """Per-question breakdown used by the session drill-down report."""
        breakdown = []
        for answer in self.answers_list:
            if not isinstance(answer, dict):
                continue
            provided = answer.get("providedAnswer")
            expected = answer.get("correctAnswer")
            correct = answer.get("correct")
            if not isinstance(correct, bool):
                correct = provided is not None and provided == expected
            breakdown.append({
                "questionId": answer.get("questionId"),
                "providedAnswer": provided,
                "correctAnswer": expected,
                "correct": correct,
                "timeTakenSeconds": answer.get("timeTakenSeconds", 0),
            })
        return breakdown

    def __repr__(self):
        return f"<GameSession(id={self.id}, user={self.user_id}, level={self.level}, status='{self.status}')>"

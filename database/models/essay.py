"""
Essay Models

Essays submitted for grading and the per-competency human evaluations
attached to them.
"""

from .base import (
    Base, Column, String, Integer, Float, DateTime, Text, JSONType,
    ForeignKey, Index, UniqueConstraint, relationship, datetime, new_id
)


class Essay(Base):
    """
    A submitted essay.

    ``text`` stays null until the OCR/correction pipeline supplies it.
    ``auto_score`` is the latest machine score (0-1000) and is written only by
    the analysis orchestrator. ``final_score`` is the authoritative grade and
    is written only by the grade aggregator.
    """
    __tablename__ = "essays"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False)
    image_url = Column(String(1000), nullable=True)
    text = Column(Text, nullable=True)

    # Grading
    auto_score = Column(Float, nullable=True)
    final_score = Column(Float, nullable=True)
    analysis = Column(JSONType, nullable=True)  # Snapshot of the last completed breakdown

    # Ownership
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    submitted_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    classroom_id = Column(String(36), ForeignKey("classrooms.id"), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    evaluations = relationship(
        "Evaluation",
        back_populates="essay",
        order_by="Evaluation.competency",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_essay_student_created", "student_id", "created_at"),
    )

    def __repr__(self):
        return f"<Essay(title={self.title}, auto={self.auto_score}, final={self.final_score})>"


class Evaluation(Base):
    """A reviewer's score for one competency of one essay."""

    __tablename__ = "evaluations"

    id = Column(String(36), primary_key=True, default=new_id)
    essay_id = Column(
        String(36),
        ForeignKey("essays.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    competency = Column(Integer, nullable=False)
    score = Column(Float, nullable=False)
    comment = Column(Text, nullable=True)
    evaluator_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    essay = relationship("Essay", back_populates="evaluations")

    __table_args__ = (
        UniqueConstraint("essay_id", "competency", name="uq_evaluation_essay_competency"),
    )

    def __repr__(self):
        return f"<Evaluation(essay={self.essay_id}, competency={self.competency}, score={self.score})>"


__all__ = [
    'Essay',
    'Evaluation',
]

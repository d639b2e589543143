"""
Classroom Models

Classrooms owned by teachers and the enrollments that tie students to them.
Enrollment is what lets a teacher see and grade a student's essays.
"""

from .base import (
    Base, Column, String, DateTime, ForeignKey, UniqueConstraint,
    relationship, datetime, new_id
)


class Classroom(Base):
    """A class taught by one teacher."""

    __tablename__ = "classrooms"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    teacher_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    enrollments = relationship("Enrollment", back_populates="classroom")

    def __repr__(self):
        return f"<Classroom(name={self.name}, teacher={self.teacher_id})>"


class Enrollment(Base):
    """A student's membership in a classroom."""

    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    classroom_id = Column(String(36), ForeignKey("classrooms.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    classroom = relationship("Classroom", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("student_id", "classroom_id", name="uq_enrollment_student_classroom"),
    )


__all__ = [
    'Classroom',
    'Enrollment',
]

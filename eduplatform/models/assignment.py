from sqlalchemy import Column, Integer, String, Text, ForeignKey, Boolean, DateTime, Float
from sqlalchemy.orm import relationship
from eduplatform.database import Base
from eduplatform.utils.time_utils import get_local_time

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    total_marks = Column(Integer, default=100)
    passing_marks = Column(Integer, default=40)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=get_local_time)

    course = relationship("Course")
    submissions = relationship("Submission", back_populates="assignment")

class Submission(Base):
    __tablename__ = "assignment_submissions"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    score = Column(Float, nullable=True)
    submitted_at = Column(DateTime, default=get_local_time)
    # Status is derived: no row -> pending, graded_at set -> graded, else submitted
    graded_at = Column(DateTime, nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")

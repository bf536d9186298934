from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime
from sqlalchemy.orm import relationship
from eduplatform.database import Base
from eduplatform.utils.time_utils import get_local_time

class TimetableEntry(Base):
    __tablename__ = "course_timetables"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True, index=True)
    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=True)

    day_of_week = Column(Integer, nullable=False) # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(8), nullable=False) # HH:MM:SS
    end_time = Column(String(8), nullable=False)
    room_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=get_local_time)
    updated_at = Column(DateTime, default=get_local_time, onupdate=get_local_time)

    course = relationship("Course", lazy="joined")
    subject = relationship("Subject", lazy="joined")

class ScheduledClass(Base):
    __tablename__ = "scheduled_classes"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    title = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, default=60)
    meeting_url = Column(String, nullable=True)
    is_cancelled = Column(Boolean, default=False)

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional

class TopicResponse(BaseModel):
    id: int
    title: str
    sequence_order: int

    model_config = ConfigDict(from_attributes=True)

class ChapterResponse(BaseModel):
    id: int
    title: str
    sequence_order: int
    topics: List[TopicResponse] = []

class SubjectResponse(BaseModel):
    id: int
    name: str
    display_order: int
    chapters: List[ChapterResponse] = []

class CourseHierarchyResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    subjects: List[SubjectResponse] = []

class AssignmentStatusItem(BaseModel):
    id: int
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    total_marks: int
    passing_marks: int
    course_id: int
    course_name: Optional[str] = None
    status: Literal["pending", "submitted", "graded"]
    score: Optional[float] = None
    submitted_at: Optional[datetime] = None

class AssignmentStats(BaseModel):
    pending: int = 0
    submitted: int = 0
    graded: int = 0

class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentStatusItem]
    stats: AssignmentStats

class ScheduledClassResponse(BaseModel):
    id: int
    course_id: int
    title: str
    scheduled_at: datetime
    duration_minutes: Optional[int]
    meeting_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class StudentTimetableResponse(BaseModel):
    classes: List[ScheduledClassResponse]
    current_class: Optional[ScheduledClassResponse] = None
    next_class: Optional[ScheduledClassResponse] = None

class StudentDashboardResponse(BaseModel):
    enrolled_course_count: int
    assignment_stats: AssignmentStats
    todays_classes: List[ScheduledClassResponse]
    current_class: Optional[ScheduledClassResponse] = None
    next_class: Optional[ScheduledClassResponse] = None

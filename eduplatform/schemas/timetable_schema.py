import re
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Dict, List, Literal, Optional

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")

def normalize_time(value: str) -> str:
    """Accept HH:MM or HH:MM:SS and return HH:MM:SS."""
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM or HH:MM:SS")
    hours, minutes, seconds = match.group(1), match.group(2), match.group(3) or "00"
    return f"{hours}:{minutes}:{seconds}"

class TimeSlot(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, examples=[1]) # 0 = Sunday
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["10:00"])

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def _check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class TimetableCandidate(TimeSlot):
    instructor_id: Optional[int] = None
    subject_id: Optional[int] = None

class ConflictCheckRequest(TimetableCandidate):
    exclude_entry_id: Optional[int] = None

class BulkConflictCheckRequest(BaseModel):
    entries: List[TimetableCandidate]

class TimetableEntryCreate(TimetableCandidate):
    course_id: int
    batch_id: Optional[int] = None
    room_number: Optional[str] = None

class TimetableEntryMove(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str

    @field_validator("start_time")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_time(value)

class ExistingEntryInfo(BaseModel):
    id: Optional[int] = None
    day_of_week: int
    start_time: str
    end_time: str
    subject_name: Optional[str] = None
    course_name: Optional[str] = None
    room_number: Optional[str] = None
    instructor_id: Optional[int] = None

class NewEntryInfo(BaseModel):
    day_of_week: int
    start_time: str
    end_time: str

class ConflictInfo(BaseModel):
    type: Literal["hard", "soft"] # hard = overlapping, soft = back-to-back
    conflict_type: Literal["instructor", "subject"] = "instructor"
    existing_entry: ExistingEntryInfo
    new_entry: NewEntryInfo
    message: str

class ConflictCheckResponse(BaseModel):
    has_hard_conflict: bool
    conflicts: List[ConflictInfo]

class BulkConflictCheckResponse(BaseModel):
    conflicts: Dict[str, List[ConflictInfo]]

class TimetableEntryResponse(BaseModel):
    id: int
    course_id: int
    subject_id: Optional[int]
    instructor_id: Optional[int]
    batch_id: Optional[int]
    day_of_week: int
    start_time: str
    end_time: str
    room_number: Optional[str]
    is_active: bool
    subject_name: Optional[str] = None
    course_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class TimetableWriteResponse(BaseModel):
    entry: TimetableEntryResponse
    warnings: List[ConflictInfo] = []

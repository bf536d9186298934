from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from eduplatform.schemas.timetable_schema import TimetableCandidate, normalize_time
from eduplatform.services import conflict_service


def entry(id, day, start, end, instructor_id=1, subject_name=None):
    subject = SimpleNamespace(name=subject_name) if subject_name else None
    return SimpleNamespace(
        id=id, day_of_week=day, start_time=start, end_time=end,
        instructor_id=instructor_id, subject=subject, course=None, room_number=None,
    )


def candidate(day, start, end, instructor_id=1, subject_id=None):
    return TimetableCandidate(day_of_week=day, start_time=start, end_time=end,
                              instructor_id=instructor_id, subject_id=subject_id)


def test_time_to_minutes_accepts_seconds():
    assert conflict_service.time_to_minutes("09:30") == 570
    assert conflict_service.time_to_minutes("09:30:00") == 570


def test_overlap_is_half_open():
    assert conflict_service.do_times_overlap("09:00", "10:00", "09:30", "10:30")
    assert not conflict_service.do_times_overlap("09:00", "10:00", "10:00", "11:00")
    assert conflict_service.do_times_overlap("09:00", "12:00", "10:00", "11:00")


def test_back_to_back_within_gap():
    assert conflict_service.are_back_to_back("10:00", "10:05", gap_minutes=5)
    assert not conflict_service.are_back_to_back("10:00", "10:06", gap_minutes=5)


def test_overlap_on_same_day_is_hard():
    conflicts = conflict_service.check_conflicts(
        candidate(1, "09:30", "10:30"), [entry(7, 1, "09:00", "10:00", subject_name="Physics")]
    )
    assert len(conflicts) == 1
    assert conflicts[0].type == "hard"
    assert conflicts[0].conflict_type == "instructor"
    assert conflicts[0].existing_entry.id == 7
    assert "Physics from 09:00 to 10:00" in conflicts[0].message
    assert conflict_service.has_hard_conflict(conflicts)


def test_adjacent_class_is_soft_warning():
    conflicts = conflict_service.check_conflicts(
        candidate(1, "10:00", "11:00"), [entry(7, 1, "09:00", "10:00")]
    )
    assert [c.type for c in conflicts] == ["soft"]
    assert not conflict_service.has_hard_conflict(conflicts)


def test_other_days_and_excluded_entry_are_ignored():
    existing = [entry(7, 2, "09:00", "10:00"), entry(8, 1, "09:00", "10:00")]
    conflicts = conflict_service.check_conflicts(candidate(1, "09:00", "10:00"), existing, exclude_entry_id=8)
    assert conflicts == []


def test_gap_larger_than_threshold_is_clear():
    conflicts = conflict_service.check_conflicts(
        candidate(1, "10:30", "11:30"), [entry(7, 1, "09:00", "10:00")]
    )
    assert conflicts == []


def test_subject_conflict_only_for_other_instructors():
    existing = [
        entry(1, 3, "09:00", "10:00", instructor_id=2),
        entry(2, 3, "09:00", "10:00", instructor_id=1),
    ]
    conflicts = conflict_service.check_subject_conflicts(
        candidate(3, "09:30", "10:30", instructor_id=1, subject_id=5), existing, subject_name="Chemistry"
    )
    assert len(conflicts) == 1
    assert conflicts[0].conflict_type == "subject"
    assert conflicts[0].existing_entry.instructor_id == 2
    assert '"Chemistry"' in conflicts[0].message


def test_check_multiple_keys_only_conflicting_candidates():
    candidates = [
        candidate(1, "09:30", "10:30", instructor_id=1),
        candidate(4, "09:00", "10:00", instructor_id=1),
        candidate(1, "09:00", "10:00", instructor_id=None),
    ]
    existing = {1: [entry(7, 1, "09:00", "10:00")]}

    result = conflict_service.check_multiple(candidates, existing)

    assert list(result) == ["1-09:30:00-1"]
    assert result["1-09:30:00-1"][0].type == "hard"


def test_candidate_times_are_normalised_and_ordered():
    assert normalize_time("09:00") == "09:00:00"
    with pytest.raises(ValidationError):
        candidate(1, "10:00", "09:00")
    with pytest.raises(ValidationError):
        candidate(7, "09:00", "10:00")
    with pytest.raises(ValidationError):
        candidate(1, "25:00", "26:00")

"""
Timetable conflict detection.

Pure functions over in-memory entries: a candidate slot is compared with an
instructor's (or a subject's) existing active entries and every clash is
classified as

* ``hard``: same day and overlapping time range; blocks the write.
* ``soft``: same day, no overlap, but one class ends within the
  back-to-back gap of the other's start; shown as a warning.

Entries may be ORM rows or pydantic models; only ``id``, ``day_of_week``,
``start_time``, ``end_time``, ``instructor_id`` and the optional ``subject`` /
``course`` relations are read.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from eduplatform.config import Config
from eduplatform.schemas.timetable_schema import ConflictInfo, ExistingEntryInfo, NewEntryInfo


def time_to_minutes(value: str) -> int:
    parts = str(value).split(":")
    return int(parts[0]) * 60 + int(parts[1])


def do_times_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    # Half-open ranges: 09:00-10:00 and 10:00-11:00 do not overlap
    s1, e1 = time_to_minutes(start1), time_to_minutes(end1)
    s2, e2 = time_to_minutes(start2), time_to_minutes(end2)
    return s1 < e2 and s2 < e1


def are_back_to_back(end: str, start: str, gap_minutes: int = None) -> bool:
    if gap_minutes is None:
        gap_minutes = Config.BACK_TO_BACK_GAP_MINUTES
    return abs(time_to_minutes(start) - time_to_minutes(end)) <= gap_minutes


def _short(value: str) -> str:
    return str(value)[:5]


def _related_name(entry, attr: str) -> Optional[str]:
    related = getattr(entry, attr, None)
    return getattr(related, "name", None) if related is not None else None


def _existing_info(entry, subject_name: Optional[str] = None) -> ExistingEntryInfo:
    return ExistingEntryInfo(
        id=getattr(entry, "id", None),
        day_of_week=entry.day_of_week,
        start_time=entry.start_time,
        end_time=entry.end_time,
        subject_name=subject_name or _related_name(entry, "subject"),
        course_name=_related_name(entry, "course"),
        room_number=getattr(entry, "room_number", None),
        instructor_id=getattr(entry, "instructor_id", None),
    )


def _new_info(candidate) -> NewEntryInfo:
    return NewEntryInfo(
        day_of_week=candidate.day_of_week,
        start_time=candidate.start_time,
        end_time=candidate.end_time,
    )


def check_conflicts(candidate, existing_entries: Iterable, exclude_entry_id: Optional[int] = None) -> List[ConflictInfo]:
    """Compare a candidate slot with one instructor's existing entries."""
    conflicts = []

    for existing in existing_entries:
        # Same row when editing or dragging
        if exclude_entry_id is not None and getattr(existing, "id", None) == exclude_entry_id:
            continue
        if existing.day_of_week != candidate.day_of_week:
            continue

        subject_name = _related_name(existing, "subject")

        if do_times_overlap(candidate.start_time, candidate.end_time, existing.start_time, existing.end_time):
            conflicts.append(ConflictInfo(
                type="hard",
                conflict_type="instructor",
                existing_entry=_existing_info(existing),
                new_entry=_new_info(candidate),
                message=(
                    f"Time conflict: Instructor already has {subject_name or 'a class'} "
                    f"from {_short(existing.start_time)} to {_short(existing.end_time)}"
                ),
            ))
        elif (are_back_to_back(existing.end_time, candidate.start_time)
              or are_back_to_back(candidate.end_time, existing.start_time)):
            conflicts.append(ConflictInfo(
                type="soft",
                conflict_type="instructor",
                existing_entry=_existing_info(existing),
                new_entry=_new_info(candidate),
                message=(
                    f"Warning: Back-to-back with {subject_name or 'another class'} "
                    f"({_short(existing.start_time)}-{_short(existing.end_time)})"
                ),
            ))

    return conflicts


def check_subject_conflicts(
    candidate,
    subject_entries: Iterable,
    subject_name: Optional[str] = None,
    exclude_entry_id: Optional[int] = None,
) -> List[ConflictInfo]:
    """Same subject, same day, overlapping time, taught by someone else."""
    conflicts = []
    if not getattr(candidate, "subject_id", None):
        return conflicts

    name = subject_name or "Subject"
    for existing in subject_entries:
        if exclude_entry_id is not None and getattr(existing, "id", None) == exclude_entry_id:
            continue
        if existing.day_of_week != candidate.day_of_week:
            continue
        # Same instructor is already covered by check_conflicts
        if existing.instructor_id == candidate.instructor_id:
            continue

        if do_times_overlap(candidate.start_time, candidate.end_time, existing.start_time, existing.end_time):
            conflicts.append(ConflictInfo(
                type="hard",
                conflict_type="subject",
                existing_entry=_existing_info(existing, subject_name=name),
                new_entry=_new_info(candidate),
                message=f'Subject conflict: "{name}" is already scheduled at this time by another instructor',
            ))

    return conflicts


def has_hard_conflict(conflicts: Iterable[ConflictInfo]) -> bool:
    return any(c.type == "hard" for c in conflicts)


def conflict_key(candidate) -> str:
    return f"{candidate.day_of_week}-{candidate.start_time}-{candidate.instructor_id}"


def group_by_instructor(candidates: Iterable) -> Dict[int, list]:
    grouped = defaultdict(list)
    for candidate in candidates:
        if not candidate.instructor_id:
            continue
        grouped[candidate.instructor_id].append(candidate)
    return dict(grouped)


def check_multiple(candidates: Iterable, entries_by_instructor: Dict[int, list]) -> Dict[str, List[ConflictInfo]]:
    """
    Check a batch of candidates against preloaded entries.

    Returns only the candidates that have conflicts, keyed by
    ``"{day}-{start}-{instructor_id}"``.
    """
    conflict_map = {}
    for instructor_id, instructor_candidates in group_by_instructor(candidates).items():
        existing = entries_by_instructor.get(instructor_id, [])
        for candidate in instructor_candidates:
            conflicts = check_conflicts(candidate, existing)
            if conflicts:
                conflict_map[conflict_key(candidate)] = conflicts
    return conflict_map

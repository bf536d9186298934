from datetime import datetime, timedelta

from eduplatform.models.assignment import Assignment, Submission
from eduplatform.models.catalog import Chapter, Course, Subject, Topic
from eduplatform.models.enrollment import Enrollment
from eduplatform.models.timetable import ScheduledClass
from eduplatform.services import student_service

NOW = datetime(2026, 3, 10, 10, 30)


async def enroll(db, student, course, is_active=True):
    db.add(Enrollment(student_id=student.id, course_id=course.id, is_active=is_active))
    await db.commit()


async def test_enrolled_courses_ignore_inactive_enrollments(db, student, course):
    old = Course(name="Foundation", slug="foundation")
    db.add(old)
    await db.commit()
    await enroll(db, student, course)
    await enroll(db, student, old, is_active=False)

    assert await student_service.get_enrolled_course_ids(db, student.id) == [course.id]


async def test_hierarchy_is_ordered_at_every_level(db, course):
    maths = Subject(course_id=course.id, name="Maths", display_order=2)
    physics = Subject(course_id=course.id, name="Physics", display_order=1)
    db.add_all([maths, physics])
    await db.commit()

    optics = Chapter(subject_id=physics.id, title="Optics", sequence_order=2)
    kinematics = Chapter(subject_id=physics.id, title="Kinematics", sequence_order=1)
    db.add_all([optics, kinematics])
    await db.commit()

    db.add_all([
        Topic(chapter_id=kinematics.id, title="Projectiles", sequence_order=2),
        Topic(chapter_id=kinematics.id, title="Vectors", sequence_order=1),
    ])
    await db.commit()

    hierarchy = await student_service.get_course_hierarchy(db, course.id)

    assert [s.name for s in hierarchy.subjects] == ["Physics", "Maths"]
    assert [c.title for c in hierarchy.subjects[0].chapters] == ["Kinematics", "Optics"]
    assert [t.title for t in hierarchy.subjects[0].chapters[0].topics] == ["Vectors", "Projectiles"]
    assert hierarchy.subjects[1].chapters == []


async def test_assignment_status_is_derived(db, student, course):
    await enroll(db, student, course)
    pending = Assignment(course_id=course.id, title="Kinematics DPP", due_date=NOW + timedelta(days=3))
    submitted = Assignment(course_id=course.id, title="Optics DPP", due_date=NOW + timedelta(days=1))
    graded = Assignment(course_id=course.id, title="Units DPP", due_date=NOW - timedelta(days=1))
    hidden = Assignment(course_id=course.id, title="Draft", is_active=False)
    db.add_all([pending, submitted, graded, hidden])
    await db.commit()

    db.add_all([
        Submission(assignment_id=submitted.id, student_id=student.id),
        Submission(assignment_id=graded.id, student_id=student.id, score=18, graded_at=NOW),
    ])
    await db.commit()

    result = await student_service.get_student_assignments(db, student.id)

    assert [(a.title, a.status) for a in result.assignments] == [
        ("Units DPP", "graded"),
        ("Optics DPP", "submitted"),
        ("Kinematics DPP", "pending"),
    ]
    assert result.assignments[0].score == 18
    assert result.assignments[0].course_name == "JEE Main"
    assert result.stats.model_dump() == {"pending": 1, "submitted": 1, "graded": 1}


async def test_no_enrollments_means_empty_assignments(db, student):
    result = await student_service.get_student_assignments(db, student.id)

    assert result.assignments == []
    assert result.stats.model_dump() == {"pending": 0, "submitted": 0, "graded": 0}


async def test_timetable_current_and_next_class(db, student, course):
    await enroll(db, student, course)
    db.add_all([
        ScheduledClass(course_id=course.id, title="Morning", scheduled_at=NOW.replace(hour=10, minute=0)),
        ScheduledClass(course_id=course.id, title="Afternoon", scheduled_at=NOW.replace(hour=14, minute=0)),
        ScheduledClass(course_id=course.id, title="Cancelled", scheduled_at=NOW.replace(hour=12), is_cancelled=True),
        ScheduledClass(course_id=course.id, title="Tomorrow", scheduled_at=NOW + timedelta(days=1)),
    ])
    await db.commit()

    today = await student_service.get_student_timetable(db, student.id, "today", now=NOW)
    assert [c.title for c in today.classes] == ["Morning", "Afternoon"]
    assert today.current_class.title == "Morning"
    assert today.next_class.title == "Afternoon"

    tomorrow = await student_service.get_student_timetable(db, student.id, "tomorrow", now=NOW)
    assert [c.title for c in tomorrow.classes] == ["Tomorrow"]

    week = await student_service.get_student_timetable(db, student.id, "week", now=NOW)
    assert len(week.classes) == 3


async def test_dashboard_combines_sections(db, student, course):
    await enroll(db, student, course)
    db.add(Assignment(course_id=course.id, title="DPP 1", due_date=NOW))
    db.add(ScheduledClass(course_id=course.id, title="Evening", scheduled_at=NOW.replace(hour=18)))
    await db.commit()

    dashboard = await student_service.get_student_dashboard(db, student.id, now=NOW)

    assert dashboard.enrolled_course_count == 1
    assert dashboard.assignment_stats.pending == 1
    assert [c.title for c in dashboard.todays_classes] == ["Evening"]
    assert dashboard.current_class is None
    assert dashboard.next_class.title == "Evening"


async def test_student_routes(client, db, student, course):
    await enroll(db, student, course)
    client.user["id"] = student.id

    response = await client.get("/api/student/assignments")
    assert response.status_code == 200
    assert response.json()["stats"] == {"pending": 0, "submitted": 0, "graded": 0}

    response = await client.get("/api/student/timetable", params={"day_filter": "month"})
    assert response.status_code == 422

    response = await client.get(f"/api/courses/{course.id}/hierarchy")
    assert response.json()["name"] == "JEE Main"

from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.api.v1.attendance import service as attendance_service
from schoolhub.core.enums import UserRole
from schoolhub.core.models import (
    Assignment,
    AttendanceRecord,
    ClassCourse,
    ClassStudent,
    ClassTeacher,
    Course,
    CourseTeacher,
    SchoolClass,
)


@pytest.fixture()
async def school(db_session: AsyncSession, make_user):
    """One teacher with two classes and a course, three students enrolled in the first class."""
    teacher = await make_user("mary.teacher@school.com", UserRole.TEACHER, first_name="Mary", last_name="Jones")
    students = [
        await make_user(f"student{i}@school.com", UserRole.STUDENT, first_name=f"Stu{i}", last_name=f"Dent{i}")
        for i in range(3)
    ]
    math_class = SchoolClass(name="Grade 7 Math", year=2024, description="Morning group")
    science_class = SchoolClass(name="Grade 7 Science", year=2024)
    course = Course(title="Algebra", description="Linear equations")
    db_session.add_all([math_class, science_class, course])
    await db_session.commit()

    db_session.add_all(
        [
            ClassTeacher(class_id=math_class.id, teacher_id=teacher.id),
            ClassTeacher(class_id=science_class.id, teacher_id=teacher.id),
            CourseTeacher(course_id=course.id, teacher_id=teacher.id),
            ClassCourse(class_id=math_class.id, course_id=course.id),
            ClassCourse(class_id=science_class.id, course_id=course.id),
        ]
        + [ClassStudent(class_id=math_class.id, student_id=s.id) for s in students]
        + [ClassStudent(class_id=science_class.id, student_id=students[0].id)]
    )
    await db_session.commit()
    return {
        "teacher": teacher,
        "students": students,
        "math": math_class,
        "science": science_class,
        "course": course,
    }


def _assignment(school, title: str, days: int, class_key: str = "math") -> Assignment:
    return Assignment(
        title=title,
        class_id=school[class_key].id,
        course_id=school["course"].id,
        teacher_id=school["teacher"].id,
        due_date=datetime.now(timezone.utc) + timedelta(days=days),
        total_marks=50,
    )


@pytest.mark.asyncio
async def test_dashboard_counts_classes_and_assignments(
    client: AsyncClient, db_session: AsyncSession, school, login
) -> None:
    db_session.add_all(
        [
            _assignment(school, "Past quiz", -3),
            _assignment(school, "Worksheet", 2),
            _assignment(school, "Lab report", 5, class_key="science"),
        ]
    )
    await db_session.commit()
    headers = await login("mary.teacher@school.com")

    response = await client.get("/teacher", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["totalClasses"] == 2
    assert body["totalAssignments"] == 3
    assert body["totalCourses"] == 1
    assert body["totalAttendanceToday"] == 0
    assert [a["title"] for a in body["upcomingAssignments"]] == ["Worksheet", "Lab report"]
    assert len(body["recentClasses"]) == 2


@pytest.mark.asyncio
async def test_dashboard_without_classes_is_all_zero(client: AsyncClient, make_user, login) -> None:
    await make_user("new.teacher@school.com", UserRole.TEACHER)
    headers = await login("new.teacher@school.com")
    body = (await client.get("/teacher", headers=headers)).json()
    assert body["totalClasses"] == 0
    assert body["totalAssignments"] == 0
    assert body["upcomingAssignments"] == []


@pytest.mark.asyncio
async def test_classes_view_merges_counts(client: AsyncClient, db_session: AsyncSession, school, login) -> None:
    db_session.add(_assignment(school, "Worksheet", 2))
    await db_session.commit()
    headers = await login("mary.teacher@school.com")

    classes = (await client.get("/teacher/classes", headers=headers)).json()
    by_name = {c["name"]: c for c in classes}
    assert by_name["Grade 7 Math"]["student_count"] == 3
    assert by_name["Grade 7 Math"]["assignment_count"] == 1
    assert by_name["Grade 7 Science"]["student_count"] == 1
    assert by_name["Grade 7 Science"]["courses"][0]["title"] == "Algebra"

    filtered = (await client.get("/teacher/classes", params={"q": "morning"}, headers=headers)).json()
    assert [c["name"] for c in filtered] == ["Grade 7 Math"]


@pytest.mark.asyncio
async def test_courses_view_counts_unique_students(client: AsyncClient, school, login) -> None:
    headers = await login("mary.teacher@school.com")
    courses = (await client.get("/teacher/courses", headers=headers)).json()
    assert len(courses) == 1
    # student0 sits in both classes and is counted once
    assert courses[0]["class_count"] == 2
    assert courses[0]["student_count"] == 3


@pytest.mark.asyncio
async def test_create_assignment_rules(client: AsyncClient, db_session: AsyncSession, school, login) -> None:
    headers = await login("mary.teacher@school.com")
    payload = {
        "title": "Homework 1",
        "description": "Chapter 3",
        "class_id": str(school["math"].id),
        "course_id": str(school["course"].id),
        "due_date": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
        "total_marks": 20,
    }
    response = await client.post("/teacher/assignments", json=payload, headers=headers)
    assert response.status_code == 201

    assert (await client.post("/teacher/assignments", json={**payload, "title": " "}, headers=headers)).status_code == 400
    assert (await client.post("/teacher/assignments", json={**payload, "total_marks": 0}, headers=headers)).status_code == 400

    foreign = SchoolClass(name="Someone else's", year=2024)
    db_session.add(foreign)
    await db_session.commit()
    response = await client.post("/teacher/assignments", json={**payload, "class_id": str(foreign.id)}, headers=headers)
    assert response.status_code == 403

    view = (await client.get("/teacher/assignments", headers=headers)).json()
    assert [a["title"] for a in view["assignments"]] == ["Homework 1"]
    assert view["assignments"][0]["class_name"] == "Grade 7 Math"
    assert view["assignments"][0]["course_title"] == "Algebra"
    assert len(view["classes"]) == 2
    assert len(view["courses"]) == 1


@pytest.mark.asyncio
async def test_attendance_save_upserts_once_per_student(
    client: AsyncClient, db_session: AsyncSession, school, login, monkeypatch
) -> None:
    today = date.today()
    math_id = school["math"].id
    student_ids = [s.id for s in school["students"]]
    # One student already has a record for today
    db_session.add(AttendanceRecord(student_id=student_ids[0], class_id=math_id, date=today, status="absent"))
    await db_session.commit()

    calls = []
    original = attendance_service.upsert_attendance_record

    async def counting_upsert(*args, **kwargs):
        calls.append(args)
        return await original(*args, **kwargs)

    monkeypatch.setattr(attendance_service, "upsert_attendance_record", counting_upsert)
    headers = await login("mary.teacher@school.com")

    payload = {
        "class_id": str(math_id),
        "date": today.isoformat(),
        "records": [
            {"student_id": str(student_ids[0]), "status": "present"},
            {"student_id": str(student_ids[1]), "status": "late"},
            {"student_id": str(student_ids[2]), "status": "absent"},
        ],
    }
    response = await client.post("/teacher/attendance", json=payload, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"saved": 3, "created": 2, "updated": 1}
    assert len(calls) == 3

    # Saving again updates in place
    response = await client.post("/teacher/attendance", json=payload, headers=headers)
    assert response.json() == {"saved": 3, "created": 0, "updated": 3}
    assert len(calls) == 6

    db_session.expire_all()
    rows = (
        await db_session.execute(select(AttendanceRecord).where(AttendanceRecord.class_id == math_id))
    ).scalars().all()
    assert len(rows) == 3
    assert {r.student_id: r.status for r in rows}[student_ids[0]] == "present"

    roster = (
        await client.get(
            "/teacher/attendance",
            params={"class_id": str(math_id), "date": today.isoformat()},
            headers=headers,
        )
    ).json()
    statuses = {s["email"]: s["status"] for s in roster["students"]}
    assert statuses["student1@school.com"] == "late"
    assert all(s["record_id"] for s in roster["students"])

    dashboard = (await client.get("/teacher", headers=headers)).json()
    assert dashboard["totalAttendanceToday"] == 3


@pytest.mark.asyncio
async def test_attendance_rejects_students_outside_the_class(
    client: AsyncClient, db_session: AsyncSession, school, make_user, login
) -> None:
    outsider = await make_user("outsider@school.com", UserRole.STUDENT)
    headers = await login("mary.teacher@school.com")
    payload = {
        "class_id": str(school["science"].id),
        "date": date.today().isoformat(),
        "records": [
            {"student_id": str(school["students"][0].id), "status": "present"},
            {"student_id": str(outsider.id), "status": "present"},
        ],
    }
    response = await client.post("/teacher/attendance", json=payload, headers=headers)
    assert response.status_code == 400

    # Nothing was written
    rows = (await db_session.execute(select(AttendanceRecord))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_roster_defaults_to_present(client: AsyncClient, school, login) -> None:
    headers = await login("mary.teacher@school.com")
    roster = (
        await client.get("/teacher/attendance", params={"class_id": str(school["math"].id)}, headers=headers)
    ).json()
    assert len(roster["students"]) == 3
    assert {s["status"] for s in roster["students"]} == {"present"}
    assert all(s["record_id"] is None for s in roster["students"])


@pytest.mark.asyncio
async def test_dashboard_counts_courses_without_classes(
    client: AsyncClient, db_session: AsyncSession, make_user, login
) -> None:
    teacher = await make_user("course.only@school.com", UserRole.TEACHER)
    course = Course(title="Geometry", description="Angles and shapes")
    db_session.add(course)
    await db_session.commit()
    db_session.add(CourseTeacher(course_id=course.id, teacher_id=teacher.id))
    await db_session.commit()

    headers = await login("course.only@school.com")
    body = (await client.get("/teacher", headers=headers)).json()
    assert body["totalClasses"] == 0
    assert body["totalCourses"] == 1
    assert body["recentClasses"] == []


@pytest.mark.asyncio
async def test_dashboard_counts_only_own_attendance_marks(
    client: AsyncClient, db_session: AsyncSession, school, make_user, login
) -> None:
    math_id = school["math"].id
    student_id = school["students"][0].id
    colleague = await make_user("tom.teacher@school.com", UserRole.TEACHER)
    db_session.add(ClassTeacher(class_id=math_id, teacher_id=colleague.id))
    await db_session.commit()

    colleague_headers = await login("tom.teacher@school.com")
    payload = {
        "class_id": str(math_id),
        "date": date.today().isoformat(),
        "records": [{"student_id": str(student_id), "status": "present"}],
    }
    response = await client.post("/teacher/attendance", json=payload, headers=colleague_headers)
    assert response.status_code == 200

    colleague_view = (await client.get("/teacher", headers=colleague_headers)).json()
    assert colleague_view["totalAttendanceToday"] == 1

    headers = await login("mary.teacher@school.com")
    assert (await client.get("/teacher", headers=headers)).json()["totalAttendanceToday"] == 0


@pytest.mark.asyncio
async def test_attendance_failure_keeps_earlier_records(
    client: AsyncClient, db_session: AsyncSession, school, login, monkeypatch
) -> None:
    math_id = school["math"].id
    student_ids = [s.id for s in school["students"]]
    original = attendance_service.upsert_attendance_record

    async def failing_on_second(db, teacher_id, class_id, att_date, mark):
        if mark.student_id == student_ids[1]:
            raise OperationalError("INSERT INTO attendance_records", {}, Exception("database is locked"))
        return await original(db, teacher_id, class_id, att_date, mark)

    monkeypatch.setattr(attendance_service, "upsert_attendance_record", failing_on_second)
    headers = await login("mary.teacher@school.com")

    payload = {
        "class_id": str(math_id),
        "date": date.today().isoformat(),
        "records": [{"student_id": str(sid), "status": "present"} for sid in student_ids],
    }
    response = await client.post("/teacher/attendance", json=payload, headers=headers)
    assert response.status_code == 500
    assert response.json()["detail"] == attendance_service.SAVE_FAILED_MESSAGE

    rows = (
        await db_session.execute(select(AttendanceRecord).where(AttendanceRecord.class_id == math_id))
    ).scalars().all()
    assert [r.student_id for r in rows] == [student_ids[0]]

import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.models import User
from schoolhub.core.enums import UserRole
from schoolhub.core.models import ClassCourse, Course, SchoolClass


@pytest.fixture()
async def admin_headers(make_user, login):
    await make_user("admin@school.com", UserRole.ADMIN, first_name="System", last_name="Admin")
    return await login("admin@school.com")


@pytest.mark.asyncio
async def test_dashboard_counts(client: AsyncClient, admin_headers, make_user, db_session: AsyncSession) -> None:
    await make_user("t1@school.com", UserRole.TEACHER)
    await make_user("s1@school.com", UserRole.STUDENT)
    await make_user("s2@school.com", UserRole.STUDENT)
    db_session.add(SchoolClass(name="Grade 7", year=2024))
    await db_session.commit()

    response = await client.get("/admin", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {
        "totalStudents": 2,
        "totalTeachers": 1,
        "totalClasses": 1,
        "totalCourses": 0,
    }


@pytest.mark.asyncio
async def test_create_and_search_users(client: AsyncClient, admin_headers) -> None:
    payload = {
        "email": "new.teacher@school.com",
        "password": "secret123",
        "first_name": "Nora",
        "last_name": "Quinn",
        "role": "teacher",
    }
    response = await client.post("/admin/users", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "teacher"

    duplicate = await client.post("/admin/users", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409

    found = await client.get("/admin/users", params={"q": "NORA"}, headers=admin_headers)
    assert [u["email"] for u in found.json()] == ["new.teacher@school.com"]

    teachers = await client.get("/admin/users", params={"role": "teacher"}, headers=admin_headers)
    assert len(teachers.json()) == 1

    everyone = await client.get("/admin/users", headers=admin_headers)
    # Newest first
    assert everyone.json()[0]["email"] == "new.teacher@school.com"


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(client: AsyncClient, admin_headers, make_user) -> None:
    await make_user("jo_ann@school.com", UserRole.STUDENT)
    await make_user("joxann@school.com", UserRole.STUDENT)

    found = await client.get("/admin/users", params={"q": "jo_ann"}, headers=admin_headers)
    assert [u["email"] for u in found.json()] == ["jo_ann@school.com"]

    percent = await client.get("/admin/users", params={"q": "%"}, headers=admin_headers)
    assert percent.json() == []


@pytest.mark.asyncio
async def test_register_form_rules(client: AsyncClient, admin_headers) -> None:
    base = {
        "email": "kid@school.com",
        "password": "secret123",
        "first_name": "Kim",
        "last_name": "Lee",
    }
    response = await client.post("/admin/users/register", json={**base, "role": "admin"}, headers=admin_headers)
    assert response.status_code == 422

    response = await client.post(
        "/admin/users/register", json={**base, "password": "123", "role": "student"}, headers=admin_headers
    )
    assert response.status_code == 422

    response = await client.post("/admin/users/register", json={**base, "role": "student"}, headers=admin_headers)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_registration_switch_blocks_students(client: AsyncClient, admin_headers) -> None:
    settings = (await client.get("/admin/settings", headers=admin_headers)).json()
    assert settings["allow_student_registration"] is True

    settings["allow_student_registration"] = False
    response = await client.put("/admin/settings", json=settings, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["allow_student_registration"] is False

    response = await client.post(
        "/admin/students",
        json={"email": "late@school.com", "password": "secret123", "first_name": "Lou", "last_name": "Late"},
        headers=admin_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_delete_self(client: AsyncClient, admin_headers, make_user, db_session: AsyncSession) -> None:
    me = (await db_session.execute(select(User).where(User.email == "admin@school.com"))).scalar_one()
    response = await client.delete(f"/admin/users/{me.id}", headers=admin_headers)
    assert response.status_code == 400

    other = await make_user("gone@school.com", UserRole.STUDENT)
    response = await client.delete(f"/admin/users/{other.id}", headers=admin_headers)
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_export_users(client: AsyncClient, admin_headers, make_user) -> None:
    await make_user("s1@school.com", UserRole.STUDENT, first_name="Sara", last_name="Stone")
    response = await client.get("/admin/users/export", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")

    ws = load_workbook(io.BytesIO(response.content)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == ("First name", "Last name", "Email", "Role", "Created at")
    assert {r[2] for r in rows[1:]} == {"admin@school.com", "s1@school.com"}


@pytest.mark.asyncio
async def test_course_validation_and_duplicates(client: AsyncClient, admin_headers) -> None:
    response = await client.post("/admin/courses", json={"title": "  ", "description": "x"}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.post(
        "/admin/courses", json={"title": "Algebra", "description": "Linear equations"}, headers=admin_headers
    )
    assert response.status_code == 201

    response = await client.post(
        "/admin/courses", json={"title": "algebra", "description": "Again"}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_linked_course_cannot_be_deleted(client: AsyncClient, admin_headers, db_session: AsyncSession) -> None:
    course = Course(title="Biology", description="Cells")
    school_class = SchoolClass(name="Grade 8", year=2024)
    db_session.add_all([course, school_class])
    await db_session.commit()
    db_session.add(ClassCourse(class_id=school_class.id, course_id=course.id))
    await db_session.commit()

    response = await client.delete(f"/admin/courses/{course.id}", headers=admin_headers)
    assert response.status_code == 400

    response = await client.delete(f"/admin/classes/{school_class.id}/courses/{course.id}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.delete(f"/admin/courses/{course.id}", headers=admin_headers)
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_class_membership(client: AsyncClient, admin_headers, make_user) -> None:
    teacher = await make_user("t1@school.com", UserRole.TEACHER)
    student = await make_user("s1@school.com", UserRole.STUDENT)

    response = await client.post("/admin/classes", json={"name": "", "year": 2024}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.post(
        "/admin/classes", json={"name": "Grade 9", "year": 2024, "description": "Morning"}, headers=admin_headers
    )
    assert response.status_code == 201
    class_id = response.json()["id"]

    assert (
        await client.post(f"/admin/classes/{class_id}/teachers", json={"teacher_id": str(teacher.id)}, headers=admin_headers)
    ).status_code == 201
    assert (
        await client.post(f"/admin/classes/{class_id}/students", json={"student_id": str(student.id)}, headers=admin_headers)
    ).status_code == 201
    again = await client.post(
        f"/admin/classes/{class_id}/students", json={"student_id": str(student.id)}, headers=admin_headers
    )
    assert again.status_code == 409

    # A student cannot be assigned as a teacher
    wrong = await client.post(
        f"/admin/classes/{class_id}/teachers", json={"teacher_id": str(student.id)}, headers=admin_headers
    )
    assert wrong.status_code == 404

    listing = (await client.get("/admin/classes", headers=admin_headers)).json()
    assert listing[0]["teacher_count"] == 1
    assert listing[0]["student_count"] == 1
    assert listing[0]["course_count"] == 0

    detail = (await client.get(f"/admin/classes/{class_id}", headers=admin_headers)).json()
    assert [s["email"] for s in detail["students"]] == ["s1@school.com"]

    students = (await client.get("/admin/students", headers=admin_headers)).json()
    assert students[0]["classes"][0]["name"] == "Grade 9"

    assert (await client.delete(f"/admin/classes/{class_id}", headers=admin_headers)).status_code == 204
    assert (await client.get("/admin/classes", headers=admin_headers)).json() == []


@pytest.mark.asyncio
async def test_teacher_course_cap(client: AsyncClient, admin_headers, make_user, db_session: AsyncSession) -> None:
    teacher = await make_user("t1@school.com", UserRole.TEACHER)
    courses = [Course(title=f"Course {i}", description="d") for i in range(3)]
    db_session.add_all(courses)
    await db_session.commit()

    settings = (await client.get("/admin/settings", headers=admin_headers)).json()
    settings["max_courses_per_teacher"] = 2
    await client.put("/admin/settings", json=settings, headers=admin_headers)

    url = f"/admin/teachers/{teacher.id}/courses"
    assert (await client.post(url, json={"course_id": str(courses[0].id)}, headers=admin_headers)).status_code == 201
    assert (await client.post(url, json={"course_id": str(courses[0].id)}, headers=admin_headers)).status_code == 409
    assert (await client.post(url, json={"course_id": str(courses[1].id)}, headers=admin_headers)).status_code == 201
    assert (await client.post(url, json={"course_id": str(courses[2].id)}, headers=admin_headers)).status_code == 400

    teachers = (await client.get("/admin/teachers", headers=admin_headers)).json()
    assert sorted(c["title"] for c in teachers[0]["courses"]) == ["Course 0", "Course 1"]

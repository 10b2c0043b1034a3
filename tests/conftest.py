import os
import tempfile

# La configuración se lee al importar app.*: se define antes
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="exam-engine-logs-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.models_registry import Base
from app.db.session import get_db
from app.main import app
from app.models.course import Course, CourseRegistration, Student
from app.schemas.token import Principal
from tests.factories import (
    ADMIN_ID, COURSE_ID, OTHER_COURSE_ID, OTHER_STAFF_ID, OTHER_STUDENT_ID,
    SEMESTER, STAFF_ID, STUDENT_ID, YEAR, auth_headers
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    session.add_all([
        Course(id=COURSE_ID, staff_id=STAFF_ID, title="Matemáticas I"),
        Course(id=OTHER_COURSE_ID, staff_id=OTHER_STAFF_ID, title="Física I"),
        Student(id=STUDENT_ID, fname="Ana", lname="Pérez", matric_number="MAT-001", email="ana@example.com"),
        Student(id=OTHER_STUDENT_ID, fname="Luis", lname="Gómez", matric_number="MAT-002", email="luis@example.com"),
        CourseRegistration(student_id=STUDENT_ID, course_id=COURSE_ID, academic_year=YEAR, semester=SEMESTER),
    ])
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers():
    return auth_headers(ADMIN_ID, "admin")


@pytest.fixture()
def staff_headers():
    return auth_headers(STAFF_ID, "staff")


@pytest.fixture()
def other_staff_headers():
    return auth_headers(OTHER_STAFF_ID, "staff")


@pytest.fixture()
def student_headers():
    return auth_headers(STUDENT_ID, "student")


@pytest.fixture()
def other_student_headers():
    return auth_headers(OTHER_STUDENT_ID, "student")


@pytest.fixture()
def staff():
    return Principal(id=STAFF_ID, role="staff")


@pytest.fixture()
def student():
    return Principal(id=STUDENT_ID, role="student")

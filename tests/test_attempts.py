from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from app.crud import crud_attempt
from app.models.exam import AttemptStatusEnum, ExamAttempt, VisibilityEnum
from app.services.attempt_service import AttemptService
from app.services.course_directory import CourseDirectory
from tests.factories import STUDENT_ID, make_exam, make_objective, make_theory


def _start(client, exam_id, headers):
    return client.post(f"/api/v1/exams/{exam_id}/attempts/start", headers=headers)


def test_start_creates_attempt_with_hidden_answers(client, db, student_headers):
    exam = make_exam(db, template=[make_objective(db), make_theory(db)])

    response = _start(client, exam.id, student_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_new"] is True
    assert data["attempt_no"] == 1
    assert data["remaining_attempts"] == 2
    assert len(data["questions"]) == 2
    assert all("correct_option" not in q for q in data["questions"])
    assert data["questions"][0]["options"][0] == {"id": "A", "text": "3"}


def test_start_resumes_in_progress_attempt(client, db, student_headers):
    exam = make_exam(db, objective_count=2)
    for _ in range(4):
        make_objective(db)

    first = _start(client, exam.id, student_headers).json()
    second = _start(client, exam.id, student_headers)
    assert second.status_code == 200
    data = second.json()
    assert data["is_new"] is False
    assert data["attempt_id"] == first["attempt_id"]
    assert data["remaining_attempts"] == 2
    assert [q["exam_item_id"] for q in data["questions"]] == [q["exam_item_id"] for q in first["questions"]]


def test_attempt_quota_is_enforced(client, db, student_headers):
    make_objective(db)
    exam = make_exam(db, objective_count=1, max_attempts=2)

    for expected_remaining in (1, 0):
        start = _start(client, exam.id, student_headers)
        assert start.status_code == 200
        assert start.json()["remaining_attempts"] == expected_remaining
        client.post(f"/api/v1/attempts/{start.json()['attempt_id']}/submit", headers=student_headers)

    response = _start(client, exam.id, student_headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "state_conflict"
    db.expire_all()
    assert db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count() == 2


def test_unpublished_exam_cannot_be_started(client, db, student_headers):
    exam = make_exam(db, objective_count=1, visibility=VisibilityEnum.draft)
    response = _start(client, exam.id, student_headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "state_conflict"


def test_exam_window_is_enforced(client, db, student_headers):
    now = datetime.now(timezone.utc)
    future = make_exam(db, objective_count=1, start_at=now + timedelta(hours=1), end_at=now + timedelta(hours=2))
    past = make_exam(db, objective_count=1, start_at=now - timedelta(hours=2), end_at=now - timedelta(hours=1))

    response = _start(client, future.id, student_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Exam has not started yet"

    response = _start(client, past.id, student_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Exam has ended"


def test_unenrolled_student_is_rejected(client, db, other_student_headers):
    exam = make_exam(db, objective_count=1)
    response = _start(client, exam.id, other_student_headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "authorization"


def test_enrollment_must_match_exam_period(client, db, student_headers):
    exam = make_exam(db, objective_count=1, semester="2ND")
    response = _start(client, exam.id, student_headers)
    assert response.status_code == 403


def test_staff_cannot_start_attempts(client, db, staff_headers):
    exam = make_exam(db, objective_count=1)
    assert _start(client, exam.id, staff_headers).status_code == 403


def test_missing_exam_is_not_found(client, student_headers):
    assert _start(client, 9999, student_headers).status_code == 404


def test_second_in_progress_attempt_violates_unique_index(db):
    exam = make_exam(db, objective_count=1)
    now = datetime.now(timezone.utc)
    db.add(ExamAttempt(exam_id=exam.id, student_id=STUDENT_ID, attempt_no=1, started_at=now,
                       status=AttemptStatusEnum.in_progress))
    db.commit()
    db.add(ExamAttempt(exam_id=exam.id, student_id=STUDENT_ID, attempt_no=2, started_at=now,
                       status=AttemptStatusEnum.in_progress))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_concurrent_start_resumes_the_winning_attempt(client, db, student, student_headers, monkeypatch):
    """Otro inicio se confirma entre las verificaciones y la creación del intento."""
    exam = make_exam(db, template=[make_objective(db), make_theory(db)])
    original_next_no = crud_attempt.get_next_attempt_no
    winners = []

    def competing_start(session, exam_id, student_id):
        if not winners:
            winners.append(None)
            winners[0] = AttemptService.start_attempt(db, student, CourseDirectory(db), exam.id)
        return original_next_no(session, exam_id, student_id)

    monkeypatch.setattr(crud_attempt, "get_next_attempt_no", competing_start)
    response = _start(client, exam.id, student_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["is_new"] is False
    assert data["attempt_id"] == winners[0]["attempt_id"]
    assert data["remaining_attempts"] == 2
    assert len(data["questions"]) == 2

    db.expire_all()
    assert db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count() == 1


def test_submit_objective_only_attempt_is_graded(client, db, student_headers):
    q1 = make_objective(db, correct="B", marks=2)
    q2 = make_objective(db, correct="A", marks=3)
    exam = make_exam(db, template=[q1, q2])
    start = _start(client, exam.id, student_headers).json()
    items = {q["question_bank_id"]: q["exam_item_id"] for q in start["questions"]}

    client.post(f"/api/v1/attempts/{start['attempt_id']}/answers",
                json={"exam_item_id": items[q1.id], "selected_option": "B"}, headers=student_headers)

    response = client.post(f"/api/v1/attempts/{start['attempt_id']}/submit", headers=student_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "graded"
    assert data["total_score"] == 2.0
    assert data["max_score"] == 5.0


def test_submit_with_theory_is_pending_grading(client, db, student_headers):
    exam = make_exam(db, template=[make_objective(db), make_theory(db, max_marks=10)])
    start = _start(client, exam.id, student_headers).json()

    response = client.post(f"/api/v1/attempts/{start['attempt_id']}/submit", headers=student_headers)
    data = response.json()
    assert data["status"] == "submitted"
    assert data["total_score"] == 0.0
    assert data["max_score"] == 11.0


def test_submit_twice_is_rejected(client, db, student_headers):
    exam = make_exam(db, template=[make_objective(db)])
    attempt_id = _start(client, exam.id, student_headers).json()["attempt_id"]

    assert client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=student_headers).status_code == 200
    response = client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Exam already submitted"


def test_submit_materializes_unanswered_items(client, db, student_headers):
    exam = make_exam(db, template=[make_objective(db), make_theory(db)])
    attempt_id = _start(client, exam.id, student_headers).json()["attempt_id"]
    client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=student_headers)

    detail = client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()
    assert len(detail["objective_answers"]) == 1
    assert detail["objective_answers"][0]["selected_option"] is None
    assert detail["objective_answers"][0]["is_correct"] is False
    assert detail["objective_answers"][0]["awarded_score"] == 0.0
    assert len(detail["theory_answers"]) == 1
    assert detail["theory_answers"][0]["awarded_score"] is None


def test_other_student_cannot_submit(client, db, student_headers, other_student_headers):
    exam = make_exam(db, template=[make_objective(db)])
    attempt_id = _start(client, exam.id, student_headers).json()["attempt_id"]
    response = client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=other_student_headers)
    assert response.status_code == 403


def test_attempt_details_reveal_answers_after_submit(client, db, student_headers):
    exam = make_exam(db, template=[make_objective(db, correct="C")])
    attempt_id = _start(client, exam.id, student_headers).json()["attempt_id"]

    detail = client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()
    assert detail["status"] == "in_progress"
    assert detail["items"][0]["correct_option"] is None

    client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=student_headers)
    detail = client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()
    assert detail["items"][0]["correct_option"] == "C"
    assert detail["exam_title"] == exam.title


def test_available_exams_lists_published_enrolled(client, db, student_headers):
    make_exam(db, objective_count=1, title="Publicado")
    make_exam(db, objective_count=1, title="Borrador", visibility=VisibilityEnum.draft)
    make_exam(db, objective_count=1, title="Otro semestre", semester="2ND")

    response = client.get("/api/v1/student/exams", headers=student_headers)
    assert response.status_code == 200
    assert [e["title"] for e in response.json()["items"]] == ["Publicado"]


def test_random_exam_end_to_end(client, db, student_headers):
    """Banco con 5 objetivas, examen de 2: dos ítems distintos y total 2 al acertar."""
    bank = {q.id: q for q in (make_objective(db, correct="B") for _ in range(5))}
    make_theory(db)
    exam = make_exam(db, objective_count=2, theory_count=0)

    start = _start(client, exam.id, student_headers).json()
    questions = start["questions"]
    assert len(questions) == 2
    assert len({q["question_bank_id"] for q in questions}) == 2
    assert all(q["question_type"] == "objective" for q in questions)
    assert all(q["question_bank_id"] in bank for q in questions)

    for q in questions:
        client.post(
            f"/api/v1/attempts/{start['attempt_id']}/answers",
            json={"exam_item_id": q["exam_item_id"], "selected_option": "B"},
            headers=student_headers,
        )
    data = client.post(f"/api/v1/attempts/{start['attempt_id']}/submit", headers=student_headers).json()
    assert data["total_score"] == 2.0
    assert data["status"] == "graded"

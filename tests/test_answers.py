from app.crud import crud_attempt
from app.models.exam import AttemptStatusEnum, ExamAnswerObjective, ExamAttempt
from app.services.attempt_service import AttemptService
from tests.factories import make_exam, make_objective, make_theory


def _start(client, db, headers, template):
    exam = make_exam(db, template=template)
    data = client.post(f"/api/v1/exams/{exam.id}/attempts/start", headers=headers).json()
    items = {q["question_bank_id"]: q["exam_item_id"] for q in data["questions"]}
    return data["attempt_id"], items


def test_objective_answer_is_scored_immediately(client, db, student_headers):
    question = make_objective(db, correct="B", marks=2)
    attempt_id, items = _start(client, db, student_headers, [question])

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "B"},
        headers=student_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_correct"] is True
    assert response.json()["awarded_score"] == 2.0

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "A"},
        headers=student_headers,
    )
    assert response.json()["is_correct"] is False
    assert response.json()["awarded_score"] == 0.0


def test_resaving_answer_keeps_single_row(client, db, student_headers):
    question = make_objective(db)
    attempt_id, items = _start(client, db, student_headers, [question])

    for option in ("A", "B", "C"):
        client.post(
            f"/api/v1/attempts/{attempt_id}/answers",
            json={"exam_item_id": items[question.id], "selected_option": option},
            headers=student_headers,
        )

    db.expire_all()
    rows = db.query(ExamAnswerObjective).filter(ExamAnswerObjective.attempt_id == attempt_id).all()
    assert len(rows) == 1
    assert rows[0].selected_option == "C"


def test_theory_answer_is_pending(client, db, student_headers):
    question = make_theory(db)
    attempt_id, items = _start(client, db, student_headers, [question])

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "answer_text": "Mi respuesta", "file_url": "https://files/1.pdf"},
        headers=student_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["question_type"] == "theory"
    assert "pending" in data["message"]
    assert "awarded_score" not in data


def test_unknown_option_is_rejected(client, db, student_headers):
    question = make_objective(db)
    attempt_id, items = _start(client, db, student_headers, [question])
    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "Z"},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert response.json()["field"] == "selected_option"


def test_item_outside_attempt_is_not_found(client, db, student_headers):
    attempt_id, _ = _start(client, db, student_headers, [make_objective(db)])
    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": 9999, "selected_option": "A"},
        headers=student_headers,
    )
    assert response.status_code == 404


def test_missing_item_reference_is_validation_error(client, db, student_headers):
    attempt_id, _ = _start(client, db, student_headers, [make_objective(db)])
    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers", json={"selected_option": "A"}, headers=student_headers
    )
    assert response.status_code == 400
    assert response.json()["field"] == "exam_item_id"


def test_answers_after_submit_are_rejected(client, db, student_headers):
    question = make_objective(db)
    attempt_id, items = _start(client, db, student_headers, [question])
    client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=student_headers)

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "B"},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Exam already submitted"


def test_answers_to_foreign_attempt_are_forbidden(client, db, student_headers, other_student_headers):
    question = make_objective(db)
    attempt_id, items = _start(client, db, student_headers, [question])
    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "B"},
        headers=other_student_headers,
    )
    assert response.status_code == 403


def test_answer_racing_a_submit_keeps_total_consistent(client, db, student, student_headers, monkeypatch):
    """La entrega ocurre entre la lectura del ítem y el guardado de la respuesta."""
    question = make_objective(db, correct="B")
    attempt_id, items = _start(client, db, student_headers, [question])

    original_get_item = crud_attempt.get_attempt_item

    def submit_then_get_item(session, attempt, exam_item_id):
        AttemptService.submit_attempt(db, student, attempt_id)
        return original_get_item(session, attempt, exam_item_id)

    monkeypatch.setattr(crud_attempt, "get_attempt_item", submit_then_get_item)
    response = client.post(
        f"/api/v1/attempts/{attempt_id}/answers",
        json={"exam_item_id": items[question.id], "selected_option": "B"},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Exam already submitted"

    db.expire_all()
    attempt = db.get(ExamAttempt, attempt_id)
    answers = db.query(ExamAnswerObjective).filter(ExamAnswerObjective.attempt_id == attempt_id).all()
    assert attempt.status == AttemptStatusEnum.graded
    assert attempt.total_score == sum(a.awarded_score for a in answers) == 0
    assert answers[0].selected_option is None

from app.models.exam import AttemptStatusEnum, ExamAttempt
from tests.factories import make_exam, make_objective, make_theory


def _submitted_attempt(client, db, student_headers, template, answers=None):
    exam = make_exam(db, template=template)
    start = client.post(f"/api/v1/exams/{exam.id}/attempts/start", headers=student_headers).json()
    items = {q["question_bank_id"]: q["exam_item_id"] for q in start["questions"]}
    for question_id, body in (answers or {}).items():
        client.post(
            f"/api/v1/attempts/{start['attempt_id']}/answers",
            json={"exam_item_id": items[question_id], **body},
            headers=student_headers,
        )
    client.post(f"/api/v1/attempts/{start['attempt_id']}/submit", headers=student_headers)
    return exam, start["attempt_id"]


def _theory_answer_ids(client, attempt_id, headers):
    view = client.get(f"/api/v1/attempts/{attempt_id}/grading", headers=headers).json()
    return [a["id"] for a in view["theory_answers"]]


def test_single_grade_above_max_is_rejected(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db, max_marks=10)])
    answer_id = _theory_answer_ids(client, attempt_id, staff_headers)[0]

    response = client.post(
        f"/api/v1/answers/theory/{answer_id}/grade", json={"awarded_score": 15}, headers=staff_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Score cannot exceed max marks"


def test_bulk_grade_clamps_to_max(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db, max_marks=10)])
    answer_id = _theory_answer_ids(client, attempt_id, staff_headers)[0]

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/grade-bulk",
        json={"grades": [{"answer_id": answer_id, "awarded_score": 15, "feedback": "Excelente"}]},
        headers=staff_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["theory_score"] == 10.0
    assert data["total_score"] == 10.0
    assert data["status"] == "graded"


def test_bulk_grade_clamps_negative_and_skips_foreign_answers(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db, max_marks=10)])
    answer_id = _theory_answer_ids(client, attempt_id, staff_headers)[0]

    response = client.post(
        f"/api/v1/attempts/{attempt_id}/grade-bulk",
        json={"grades": [{"answer_id": answer_id, "awarded_score": -3}, {"answer_id": 9999, "awarded_score": 5}]},
        headers=staff_headers,
    )
    data = response.json()
    assert data["theory_score"] == 0.0
    assert data["graded_answer_ids"] == [answer_id]
    assert data["skipped_answer_ids"] == [9999]


def test_bulk_grade_requires_entries(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db)])
    response = client.post(f"/api/v1/attempts/{attempt_id}/grade-bulk", json={"grades": []}, headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["field"] == "grades"


def test_mixed_attempt_grading_flow(client, db, student_headers, staff_headers):
    """Objetiva 2/2 + dos teóricas 7/10 y 5/10 -> total 14 al calificar la última."""
    objective = make_objective(db, correct="B", marks=2)
    theory_a = make_theory(db, max_marks=10)
    theory_b = make_theory(db, max_marks=10)
    _, attempt_id = _submitted_attempt(
        client, db, student_headers, [objective, theory_a, theory_b],
        answers={
            objective.id: {"selected_option": "B"},
            theory_a.id: {"answer_text": "Respuesta A"},
            theory_b.id: {"answer_text": "Respuesta B"},
        },
    )

    submitted = client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()
    assert submitted["status"] == "submitted"
    assert submitted["total_score"] == 2.0
    assert submitted["max_score"] == 22.0

    first, second = _theory_answer_ids(client, attempt_id, staff_headers)
    response = client.post(
        f"/api/v1/answers/theory/{first}/grade", json={"awarded_score": 7, "feedback": "Bien"}, headers=staff_headers
    )
    assert response.status_code == 200
    assert response.json()["awarded_score"] == 7.0
    assert client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()["status"] == "submitted"

    client.post(f"/api/v1/answers/theory/{second}/grade", json={"awarded_score": 5}, headers=staff_headers)
    graded = client.get(f"/api/v1/attempts/{attempt_id}", headers=student_headers).json()
    assert graded["status"] == "graded"
    assert graded["total_score"] == 14.0
    assert graded["graded_by"] is not None


def test_regrading_recomputes_total(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db, max_marks=10)])
    answer_id = _theory_answer_ids(client, attempt_id, staff_headers)[0]

    client.post(f"/api/v1/answers/theory/{answer_id}/grade", json={"awarded_score": 4}, headers=staff_headers)
    client.post(f"/api/v1/answers/theory/{answer_id}/grade", json={"awarded_score": 9}, headers=staff_headers)

    db.expire_all()
    attempt = db.get(ExamAttempt, attempt_id)
    assert attempt.total_score == 9.0


def test_grading_in_progress_attempt_is_conflict(client, db, student_headers, staff_headers):
    question = make_theory(db)
    exam = make_exam(db, template=[question])
    start = client.post(f"/api/v1/exams/{exam.id}/attempts/start", headers=student_headers).json()

    response = client.post(
        f"/api/v1/attempts/{start['attempt_id']}/grade-bulk",
        json={"grades": [{"answer_id": 1, "awarded_score": 5}]},
        headers=staff_headers,
    )
    assert response.status_code == 409


def test_negative_single_grade_is_validation_error(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db)])
    answer_id = _theory_answer_ids(client, attempt_id, staff_headers)[0]
    response = client.post(
        f"/api/v1/answers/theory/{answer_id}/grade", json={"awarded_score": -1}, headers=staff_headers
    )
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"


def test_grading_foreign_course_is_forbidden(client, db, student_headers, other_staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_theory(db)])
    response = client.get(f"/api/v1/attempts/{attempt_id}/grading", headers=other_staff_headers)
    assert response.status_code == 403


def test_grading_view_includes_answers_and_student(client, db, student_headers, staff_headers):
    _, attempt_id = _submitted_attempt(client, db, student_headers, [make_objective(db, correct="A"), make_theory(db)])
    view = client.get(f"/api/v1/attempts/{attempt_id}/grading", headers=staff_headers).json()
    assert view["student"]["matric_number"] == "MAT-001"
    objective_item = next(i for i in view["items"] if i["question_type"] == "objective")
    theory_item = next(i for i in view["items"] if i["question_type"] == "theory")
    assert objective_item["correct_option"] == "A"
    assert theory_item["rubric_json"] == {"criteria": ["claridad", "precisión"]}


def test_attempt_list_includes_student_display(client, db, student_headers, staff_headers):
    exam, _ = _submitted_attempt(client, db, student_headers, [make_objective(db)])
    db.add(ExamAttempt(exam_id=exam.id, student_id=555, attempt_no=1, status=AttemptStatusEnum.graded, total_score=0, max_score=1))
    db.commit()

    response = client.get(f"/api/v1/exams/{exam.id}/attempts", headers=staff_headers)
    assert response.status_code == 200
    items = response.json()["items"]
    assert response.json()["total"] == 2
    students = {i["student_id"]: i["student"] for i in items}
    assert students[555] is None
    assert students[100]["fname"] == "Ana"

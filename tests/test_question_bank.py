from app.models.audit import AdminActivityLog
from app.models.question_bank import QuestionStatusEnum
from tests.factories import COURSE_ID, OTHER_COURSE_ID, make_exam, make_objective, make_theory

BASE = "/api/v1/bank/questions"


def _objective_body(**overrides):
    body = {
        "course_id": COURSE_ID,
        "question_text": "¿Cuánto es 2 + 2?",
        "options": [{"id": "A", "text": "3"}, {"id": "B", "text": "4"}],
        "correct_option": "B",
        "topic": "Aritmética",
        "tags": ["suma"],
    }
    body.update(overrides)
    return body


def test_create_objective_question_defaults(client, staff_headers):
    response = client.post(f"{BASE}/objective", json=_objective_body(), headers=staff_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["question_type"] == "objective"
    assert data["status"] == "approved"
    assert data["source_type"] == "manual"
    assert data["objective"]["marks"] == 1.0
    assert data["objective"]["correct_option"] == "B"
    assert data["theory"] is None


def test_create_objective_rejects_single_option(client, staff_headers):
    body = _objective_body(options=[{"id": "A", "text": "3"}], correct_option="A")
    response = client.post(f"{BASE}/objective", json=body, headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"
    assert response.json()["field"] == "options"


def test_create_objective_rejects_unknown_correct_option(client, staff_headers):
    response = client.post(f"{BASE}/objective", json=_objective_body(correct_option="Z"), headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["field"] == "correct_option"


def test_create_objective_missing_field_reports_field(client, staff_headers):
    body = _objective_body()
    del body["question_text"]
    response = client.post(f"{BASE}/objective", json=body, headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"
    assert response.json()["field"] == "question_text"


def test_create_question_in_foreign_course_is_forbidden(client, staff_headers):
    response = client.post(
        f"{BASE}/objective", json=_objective_body(course_id=OTHER_COURSE_ID), headers=staff_headers
    )
    assert response.status_code == 403
    assert response.json()["kind"] == "authorization"


def test_students_cannot_manage_bank(client, student_headers):
    response = client.post(f"{BASE}/objective", json=_objective_body(), headers=student_headers)
    assert response.status_code == 403


def test_missing_token_is_unauthenticated(client):
    response = client.get(f"{BASE}?course_id={COURSE_ID}")
    assert response.status_code == 401
    assert response.json()["kind"] == "authentication"


def test_create_theory_question(client, staff_headers):
    body = {
        "course_id": COURSE_ID,
        "question_text": "Explique la derivada.",
        "max_marks": 10,
        "rubric_json": {"criteria": ["definición", "ejemplo"]},
    }
    response = client.post(f"{BASE}/theory", json=body, headers=staff_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["question_type"] == "theory"
    assert data["theory"]["max_marks"] == 10.0


def test_admin_creation_is_audited(client, db, admin_headers):
    response = client.post(f"{BASE}/objective", json=_objective_body(), headers=admin_headers)
    assert response.status_code == 201
    db.expire_all()
    logs = db.query(AdminActivityLog).filter(AdminActivityLog.action == "question_created").all()
    assert len(logs) == 1
    assert logs[0].target_id == response.json()["id"]


def test_list_filters_by_type_and_status(client, db, staff_headers):
    make_objective(db)
    make_objective(db, status=QuestionStatusEnum.draft)
    make_theory(db)
    make_objective(db, course_id=OTHER_COURSE_ID)

    response = client.get(f"{BASE}?course_id={COURSE_ID}", headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = client.get(f"{BASE}?course_id={COURSE_ID}&question_type=objective", headers=staff_headers)
    assert response.json()["total"] == 1

    response = client.get(f"{BASE}?course_id={COURSE_ID}&status=draft", headers=staff_headers)
    assert response.json()["total"] == 1


def test_list_filters_by_tag(client, staff_headers):
    client.post(f"{BASE}/objective", json=_objective_body(tags=["suma"]), headers=staff_headers)
    client.post(f"{BASE}/objective", json=_objective_body(tags=["resta"]), headers=staff_headers)

    response = client.get(f"{BASE}?course_id={COURSE_ID}&tag=resta", headers=staff_headers)
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["tags"] == ["resta"]


def test_update_objective_revalidates_correct_option(client, db, staff_headers):
    question = make_objective(db, correct="B")
    response = client.put(
        f"{BASE}/{question.id}/objective", json={"correct_option": "Z"}, headers=staff_headers
    )
    assert response.status_code == 400

    response = client.put(
        f"{BASE}/{question.id}/objective", json={"correct_option": "C", "marks": 2}, headers=staff_headers
    )
    assert response.status_code == 200
    assert response.json()["objective"]["correct_option"] == "C"
    assert response.json()["objective"]["marks"] == 2.0


def test_update_with_wrong_kind_is_not_found(client, db, staff_headers):
    question = make_theory(db)
    response = client.put(f"{BASE}/{question.id}/objective", json={"marks": 2}, headers=staff_headers)
    assert response.status_code == 404


def test_delete_question_in_use_is_refused(client, db, staff_headers):
    question = make_objective(db)
    make_exam(db, template=[question])

    response = client.delete(f"{BASE}/{question.id}", headers=staff_headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "state_conflict"


def test_delete_unused_question(client, db, staff_headers):
    question = make_objective(db)
    response = client.delete(f"{BASE}/{question.id}", headers=staff_headers)
    assert response.status_code == 204
    assert client.get(f"{BASE}/{question.id}", headers=staff_headers).status_code == 404

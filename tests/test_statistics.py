from app.models.exam import AttemptStatusEnum, ExamAttempt
from tests.factories import OTHER_STUDENT_ID, STUDENT_ID, make_exam


def _graded(db, exam, student_id, attempt_no, score):
    db.add(ExamAttempt(
        exam_id=exam.id, student_id=student_id, attempt_no=attempt_no,
        status=AttemptStatusEnum.graded, total_score=score, max_score=20,
    ))


def test_statistics_without_graded_attempts_are_zero(client, db, staff_headers):
    exam = make_exam(db, objective_count=1)
    db.add(ExamAttempt(exam_id=exam.id, student_id=STUDENT_ID, attempt_no=1, status=AttemptStatusEnum.submitted))
    db.commit()

    response = client.get(f"/api/v1/exams/{exam.id}/statistics", headers=staff_headers)
    assert response.status_code == 200
    assert response.json() == {
        "exam_id": exam.id,
        "total_attempts": 0,
        "average_score": "0.00",
        "highest_score": 0.0,
        "lowest_score": 0.0,
    }


def test_statistics_over_graded_attempts(client, db, staff_headers):
    exam = make_exam(db, objective_count=1)
    _graded(db, exam, STUDENT_ID, 1, 10)
    _graded(db, exam, STUDENT_ID, 2, 15)
    _graded(db, exam, OTHER_STUDENT_ID, 1, 12)
    db.add(ExamAttempt(exam_id=exam.id, student_id=OTHER_STUDENT_ID, attempt_no=2,
                       status=AttemptStatusEnum.submitted, total_score=1))
    db.commit()

    data = client.get(f"/api/v1/exams/{exam.id}/statistics", headers=staff_headers).json()
    assert data["total_attempts"] == 3
    assert data["average_score"] == "12.33"
    assert data["highest_score"] == 15.0
    assert data["lowest_score"] == 10.0


def test_statistics_require_course_access(client, db, other_staff_headers):
    exam = make_exam(db, objective_count=1)
    response = client.get(f"/api/v1/exams/{exam.id}/statistics", headers=other_staff_headers)
    assert response.status_code == 403

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import StateConflictError
from app.models.exam import AttemptStatusEnum, ExamAnswerObjective, ExamAttempt
from app.scripts.expire_attempts import run_sweep
from app.services.expiry_service import expire_overdue_attempts
from tests.factories import make_exam, make_objective, make_theory


def _start(client, db, headers, template, duration=30):
    exam = make_exam(db, template=template, duration_minutes=duration)
    return client.post(f"/api/v1/exams/{exam.id}/attempts/start", headers=headers).json()["attempt_id"]


def test_sweep_is_disabled_by_default(db):
    with pytest.raises(StateConflictError):
        expire_overdue_attempts(db)
    assert run_sweep(db) == 1


def test_sweep_submits_overdue_attempts(client, db, student_headers):
    attempt_id = _start(client, db, student_headers, [make_objective(db), make_theory(db)], duration=30)
    later = datetime.now(timezone.utc) + timedelta(minutes=40)

    expired = expire_overdue_attempts(db, now=later, grace_minutes=5, enabled=True)
    assert expired == [attempt_id]

    db.expire_all()
    attempt = db.get(ExamAttempt, attempt_id)
    assert attempt.status == AttemptStatusEnum.submitted
    assert attempt.auto_submitted is True
    assert db.query(ExamAnswerObjective).filter(ExamAnswerObjective.attempt_id == attempt_id).count() == 1


def test_sweep_leaves_attempts_within_grace(client, db, student_headers):
    _start(client, db, student_headers, [make_objective(db)], duration=30)
    later = datetime.now(timezone.utc) + timedelta(minutes=33)
    assert expire_overdue_attempts(db, now=later, grace_minutes=5, enabled=True) == []


def test_admin_endpoint_respects_setting(client, db, admin_headers, student_headers):
    response = client.post("/api/v1/admin/attempts/expire", headers=admin_headers)
    assert response.status_code == 409

    response = client.post("/api/v1/admin/attempts/expire", headers=student_headers)
    assert response.status_code == 403

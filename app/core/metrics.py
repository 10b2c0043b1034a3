# app/core/metrics.py
from prometheus_client import Counter

# Métricas de Prometheus del motor de exámenes
exam_attempts_started_total = Counter(
    'exam_attempts_started_total',
    'Exam attempt start requests',
    ['outcome']  # created | resumed | rejected
)

exam_answers_saved_total = Counter(
    'exam_answers_saved_total',
    'Answers auto-saved during attempts',
    ['question_type']
)

exam_grading_operations_total = Counter(
    'exam_grading_operations_total',
    'Theory grading operations',
    ['mode']  # single | bulk
)

exam_attempts_finalized_total = Counter(
    'exam_attempts_finalized_total',
    'Attempts that left the in_progress state',
    ['status']
)

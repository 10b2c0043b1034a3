# app/main.py
import logging

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.endpoints import admin, exams, grading, health, question_bank, student_exams
from app.core.config import settings
from app.core.exceptions import ExamEngineError
from app.core.logging_config import setup_logging
from middleware.request_logging import RequestLoggingMiddleware

# Configurar logging al inicio de la aplicacion
setup_logging()
logger = logging.getLogger('app')

app = FastAPI(
    title=settings.PROJECT_NAME,
    description='''
    ## Motor de exámenes en línea

    **Servicios Disponibles:**
    - **Question Bank**: Preguntas objetivas y teóricas por curso
    - **Exams**: Definición de exámenes, selección manual o aleatoria
    - **Attempts**: Inicio, auto-guardado de respuestas y entrega
    - **Grading**: Calificación individual y masiva de respuestas teóricas
    - **Statistics**: Resumen de intentos calificados
    - **Health Check**: Monitoreo de estado del servicio
    ''',
    version='1.0.0',
    openapi_url='/openapi.json',
    docs_url='/docs',
    redoc_url='/redoc'
)

logger.info('Exam engine API starting up')

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

# Middleware de logging para capturar todas las requests
app.add_middleware(RequestLoggingMiddleware)


def _with_request_id(request: Request, body: dict) -> dict:
    request_id = getattr(request.state, 'request_id', None)
    if request_id:
        body['request_id'] = request_id
    return body


@app.exception_handler(ExamEngineError)
async def exam_engine_error_handler(request: Request, exc: ExamEngineError):
    logger.warning(
        f'{exc.kind.value}: {exc.detail}',
        extra={'endpoint': request.url.path, 'status_code': exc.status_code,
               'error_code': exc.kind.value, 'user_id': getattr(request.state, 'user_id', None)}
    )
    return JSONResponse(status_code=exc.status_code, content=_with_request_id(request, exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    field = None
    if errors:
        # loc = ('body', 'title') -> 'title'
        loc = [str(part) for part in errors[0].get('loc', []) if part not in ('body', 'query', 'path')]
        field = '.'.join(loc) or None
    body = {
        'detail': errors[0].get('msg', 'Invalid request') if errors else 'Invalid request',
        'kind': 'validation',
        'field': field,
        'errors': errors,
    }
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_with_request_id(request, body))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        f'Database error on {request.method} {request.url.path}',
        exc_info=exc,
        extra={'endpoint': request.url.path, 'error_code': 'database_error'}
    )
    body = {'detail': 'Internal server error', 'kind': 'internal'}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_with_request_id(request, body))


# Incluir rutas
app.include_router(health.router, prefix='/api/v1', tags=['Health Check'])
app.include_router(question_bank.router, prefix='/api/v1/bank/questions', tags=['Question Bank'])
app.include_router(exams.router, prefix='/api/v1', tags=['Exams'])
app.include_router(student_exams.router, prefix='/api/v1', tags=['Student Attempts'])
app.include_router(grading.router, prefix='/api/v1', tags=['Grading'])
app.include_router(admin.router, prefix='/api/v1', tags=['Administration'])


@app.get('/')
async def root():
    return {
        'message': 'Exam engine API',
        'status': 'operativo',
        'version': '1.0.0',
        'docs': '/docs',
    }


@app.get('/metrics', include_in_schema=False)
async def metrics():
    """Métricas de Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

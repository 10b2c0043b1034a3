# MIDDLEWARE DE LOGGING DE PETICIONES
# Asigna un request_id a cada peticion y registra metodo, ruta, estado y tiempo

import json
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import get_api_logger, log_api_request


def generate_request_id() -> str:
    return f'req_{uuid.uuid4().hex[:12]}'


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger=None):
        super().__init__(app)
        self.logger = logger or get_api_logger()

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self.logger.exception(
                f'Unhandled error: {request.method} {request.url.path}',
                extra={'request_id': request_id, 'response_time_ms': elapsed_ms, 'error_code': 'unhandled'}
            )
            response = Response(
                content=json.dumps({'detail': 'Internal server error', 'kind': 'internal', 'request_id': request_id}),
                status_code=500,
                media_type='application/json'
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log_api_request(
            self.logger,
            request.method,
            request.url.path,
            status_code=response.status_code,
            response_time_ms=elapsed_ms,
            user_id=getattr(request.state, 'user_id', None),
            request_id=request_id,
        )
        response.headers['X-Request-ID'] = request_id
        return response

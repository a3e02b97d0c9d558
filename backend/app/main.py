import time
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.dataset_cache import DatasetCache
from app.core.logging_config import log_request, structured_log
from app.core.prod_check import validate_production_config
from app.core.request_metrics import observe
from app.services.data_loader import DatasetLoader

app = FastAPI(title=settings.app_name, version='1.0.0')

# una sola caché y un solo loader por proceso; los endpoints los leen de app.state
app.state.dataset_cache = DatasetCache(settings.dataset_cache_ttl_seconds)
app.state.dataset_loader = DatasetLoader(settings, app.state.dataset_cache)

if settings.cors_origins and settings.cors_origins.strip() != '*':
    origins = [o.strip() for o in settings.cors_origins.split(',') if o.strip()]
else:
    origins = [
        'http://localhost:3000', 'http://localhost:5173',
        'http://127.0.0.1:3000', 'http://127.0.0.1:5173',
    ]


def _cors_error_headers(request: Request) -> dict[str, str]:
    origin = request.headers.get('origin', '').strip()
    if not origin or origin not in origins:
        return {}
    return {
        'access-control-allow-origin': origin,
        'access-control-allow-credentials': 'true',
        'vary': 'Origin',
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
    expose_headers=['Content-Disposition', 'x-trace-id'],
)


def _trace_id(request: Request) -> str:
    return getattr(request.state, 'trace_id', None) or request.headers.get('x-trace-id') or str(uuid.uuid4())


@app.middleware('http')
async def trace_and_logging(request: Request, call_next):
    trace_id = request.headers.get('x-trace-id') or str(uuid.uuid4())
    request.state.trace_id = trace_id
    start = time.time()
    try:
        response = await call_next(request)
        latency = round((time.time() - start) * 1000, 2)
        observe(request.url.path, latency)
        log_request(request.url.path, request.method, trace_id, latency, response.status_code)
        response.headers['x-trace-id'] = trace_id
        response.headers['x-latency-ms'] = str(latency)
        return response
    except Exception as exc:
        latency = round((time.time() - start) * 1000, 2)
        structured_log(
            'error', 'request_failed',
            trace_id=trace_id, duration_ms=latency,
            endpoint=f'{request.method} {request.url.path}',
            error=str(exc),
        )
        body = {'error_code': 'INTERNAL_ERROR', 'message': 'Error interno', 'details': str(exc), 'trace_id': trace_id}
        headers = {'x-trace-id': trace_id, 'x-latency-ms': str(latency)}
        headers.update(_cors_error_headers(request))
        return JSONResponse(status_code=500, content=body, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    trace_id = _trace_id(request)
    if isinstance(exc.detail, dict):
        body = {
            'error_code': str(exc.detail.get('error_code') or 'HTTP_ERROR'),
            'message': str(exc.detail.get('message') or 'HTTP Error'),
            'details': exc.detail.get('details'),
            'trace_id': trace_id,
        }
    else:
        body = {'error_code': 'HTTP_ERROR', 'message': str(exc.detail), 'details': None, 'trace_id': trace_id}
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    body = {
        'error_code': 'INVALID_PAYLOAD',
        'message': 'Payload invalido',
        'details': {'errors': jsonable_encoder(exc.errors())},
        'trace_id': _trace_id(request),
    }
    return JSONResponse(status_code=422, content=body)


app.include_router(v1_router)


@app.on_event('startup')
def _check_config_on_startup() -> None:
    validate_production_config()
    structured_log(
        'info', 'app_started',
        env=settings.app_env,
        sources=list(settings.csv_sources()),
        cache_ttl_seconds=settings.dataset_cache_ttl_seconds,
    )


if __name__ == '__main__':
    import uvicorn

    uvicorn.run('app.main:app', host='0.0.0.0', port=settings.app_port)

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contest.api.cors import CORS_HEADERS, cors_policy
from contest.api.deps import get_locale
from contest.api.routes import stats, submit
from contest.core.config import check_settings, settings
from contest.core.errors import ConfigurationError
from contest.core.logger import setup_logging
from contest.i18n import translator
from contest.services.container import ServiceContainer

logger = logging.getLogger(__name__)
API_PREFIX = '/api'


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    # clients stay lazy; this only reports bad configuration early
    try:
        check_settings(settings)
    except ConfigurationError as e:
        logger.error('Configuration problem, requests will fail until fixed: %s', e)
    else:
        logger.info(
            'Contest backend starting (store=%s, mail=%s)',
            settings.STORE_BACKEND,
            settings.MAIL_BACKEND,
        )
    yield


app = FastAPI(title='WhoWinningLilly Contest Backend', lifespan=lifespan)
app.state.container = ServiceContainer(settings)

# Routers
app.include_router(submit.router, prefix=API_PREFIX, tags=['contest'])
app.include_router(stats.router, prefix=API_PREFIX, tags=['contest'])


@app.middleware('http')
async def add_locale_header(request: Request, call_next):
    locale = request.headers.get('X-Locale', settings.DEFAULT_LOCALE)
    request.state.locale = locale
    response = await call_next(request)
    response.headers['Content-Language'] = locale
    return response


# registered last so it wraps everything, including preflights
app.middleware('http')(cors_policy)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    locale = getattr(request.state, 'locale', settings.DEFAULT_LOCALE)
    return JSONResponse(
        status_code=400,
        content={'success': False, 'message': translator.t('submission.invalid_email', locale=locale)},
    )


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)
    message = translator.t('errors.method_not_allowed', locale=get_locale(request))
    # each endpoint keeps its own error body shape
    if request.url.path.rstrip('/') == f'{API_PREFIX}/stats':
        return stats.failure(405, message, headers=exc.headers)
    return submit.failure(405, message, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    locale = getattr(request.state, 'locale', settings.DEFAULT_LOCALE)
    return JSONResponse(
        status_code=500,
        content={'success': False, 'message': translator.t('errors.internal', locale=locale)},
        # runs outside the middleware stack
        headers=CORS_HEADERS,
    )


@app.get('/health', tags=['meta'])
async def health():
    return {'status': 'ok'}

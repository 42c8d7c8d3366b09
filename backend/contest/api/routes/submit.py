import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from contest.api.deps import get_container, get_locale
from contest.core.errors import ConfigurationError, ContestError
from contest.i18n import translator
from contest.schemas.participation import FailureOut, SubmissionIn, SubmissionOut
from contest.services.container import ServiceContainer

logger = logging.getLogger(__name__)
router = APIRouter()


def failure(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=FailureOut(message=message).model_dump(),
        headers=headers,
    )


@router.post(
    '/submit',
    response_model=SubmissionOut,
    responses={400: {'model': FailureOut}, 500: {'model': FailureOut}},
)
def submit(
    request: Request,
    data: SubmissionIn,
    container: ServiceContainer = Depends(get_container),
):
    locale = get_locale(request)
    try:
        result = container.participation_service().submit(data.email, locale=locale)
    except ConfigurationError as e:
        logger.error('Submission failed, service misconfigured: %s', e)
        return failure(e.status_code, str(e))
    except ContestError as e:
        logger.info('Submission rejected (%s): %s', type(e).__name__, e)
        return failure(e.status_code, translator.t(e.message_key, locale=locale))
    return SubmissionOut(
        message=translator.t('submission.success', locale=locale),
        is_winner=result.is_winner,
    )

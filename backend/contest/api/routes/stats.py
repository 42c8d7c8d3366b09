import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from contest.api.deps import get_container, get_locale
from contest.core.errors import ContestError
from contest.i18n import translator
from contest.schemas.stats import StatsErrorOut, StatsOut
from contest.services.container import ServiceContainer

logger = logging.getLogger(__name__)
router = APIRouter()


def failure(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=StatsErrorOut(error=message).model_dump(),
        headers=headers,
    )


@router.get('/stats', response_model=StatsOut, responses={500: {'model': StatsErrorOut}})
async def stats(request: Request, container: ServiceContainer = Depends(get_container)):
    try:
        snapshot = await container.stats_reporter().report()
    except ContestError:
        logger.error('Stats unavailable', exc_info=True)
        return failure(500, translator.t('stats.failed', locale=get_locale(request)))
    return StatsOut(
        total_attempts=snapshot.total_attempts,
        attempts_today=snapshot.attempts_today,
        winners=snapshot.winners,
        prizes_remaining=snapshot.prizes_remaining,
    )

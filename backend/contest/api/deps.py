from fastapi import Request

from contest.core.config import settings
from contest.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_locale(request: Request) -> str:
    return getattr(request.state, 'locale', settings.DEFAULT_LOCALE)

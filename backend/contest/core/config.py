from functools import lru_cache

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from contest.core.errors import ConfigurationError

_WHITESPACE = (' ', '\n', '\r', '\t')


class Settings(BaseSettings):
    STORE_BACKEND: str = "upstash"
    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None
    DATABASE_URL: str = "sqlite:///./dev.db"
    MAIL_BACKEND: str = "resend"
    RESEND_API_KEY: str | None = None
    MAIL_FROM: str = "WhoWinningLilly <onboarding@resend.dev>"
    DEFAULT_LOCALE: str = "en"
    LOG_LEVEL: str = "INFO"
    WIN_PROBABILITY: float = 0.0001
    PRIZE_POOL: int = 10
    PARTICIPANT_TTL_SECONDS: int = 60 * 60 * 24 * 30

    model_config = ConfigDict(env_file = ".env", extra = "ignore")

@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()


def clean_credential(name: str, value: str | None) -> str:
    """Strip surrounding whitespace and reject missing or broken values."""
    cleaned = value.strip() if value else ''
    if not cleaned:
        raise ConfigurationError(f'Missing {name}. Please check environment variables.')
    if any(ch in cleaned for ch in _WHITESPACE):
        raise ConfigurationError(
            f'{name} contains invalid whitespace characters. Please check your environment variable.'
        )
    return cleaned


def store_credentials(cfg: Settings) -> tuple[str, str]:
    url = clean_credential('UPSTASH_REDIS_REST_URL', cfg.UPSTASH_REDIS_REST_URL)
    token = clean_credential('UPSTASH_REDIS_REST_TOKEN', cfg.UPSTASH_REDIS_REST_TOKEN)
    if not url.startswith('https://'):
        raise ConfigurationError('Invalid Redis URL format. Must start with https://')
    return url, token


def check_settings(cfg: Settings) -> None:
    """Validate everything the configured backends need before first use."""
    if cfg.STORE_BACKEND == 'upstash':
        store_credentials(cfg)
    elif cfg.STORE_BACKEND != 'sql':
        raise ConfigurationError(f'Unknown STORE_BACKEND {cfg.STORE_BACKEND!r}')
    if cfg.MAIL_BACKEND == 'resend':
        clean_credential('RESEND_API_KEY', cfg.RESEND_API_KEY)
    elif cfg.MAIL_BACKEND != 'console':
        raise ConfigurationError(f'Unknown MAIL_BACKEND {cfg.MAIL_BACKEND!r}')
    if not 0 <= cfg.WIN_PROBABILITY <= 1:
        raise ConfigurationError('WIN_PROBABILITY must be between 0 and 1')

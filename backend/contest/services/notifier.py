import logging
from dataclasses import dataclass
from typing import Protocol

import resend

from contest.core.config import Settings, clean_credential
from contest.core.errors import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    to: str
    sender: str
    subject: str
    body: str


class Notifier(Protocol):
    def send(self, message: Notification) -> None: ...


class ResendNotifier:
    def __init__(self, api_key: str):
        # the SDK reads its key from module state
        resend.api_key = api_key

    def send(self, message: Notification) -> None:
        params = {
            'from': message.sender,
            'to': [message.to],
            'subject': message.subject,
            'text': message.body,
        }
        try:
            sent = resend.Emails.send(params)
        except Exception as e:
            raise NotificationError(f'Resend rejected mail to {message.to}: {e}') from e
        logger.info('Mail sent to %s (id=%s)', message.to, sent.get('id') if sent else None)


class ConsoleNotifier:
    """Logs mail instead of sending it; for local runs."""

    def send(self, message: Notification) -> None:
        logger.info(
            'MAIL to=%s from=%s subject=%r\n%s',
            message.to,
            message.sender,
            message.subject,
            message.body,
        )


def build_notifier(cfg: Settings) -> Notifier:
    if cfg.MAIL_BACKEND == 'resend':
        return ResendNotifier(clean_credential('RESEND_API_KEY', cfg.RESEND_API_KEY))
    if cfg.MAIL_BACKEND == 'console':
        return ConsoleNotifier()
    raise ConfigurationError(f'Unknown MAIL_BACKEND {cfg.MAIL_BACKEND!r}')

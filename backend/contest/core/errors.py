class ContestError(Exception):
    """Base error. ``message_key`` points at the user-facing text in the locale files."""

    status_code: int = 500
    message_key: str = 'errors.internal'

    def __init__(self, detail: str | None = None, *, message_key: str | None = None):
        super().__init__(detail or self.__class__.__name__)
        if message_key is not None:
            self.message_key = message_key


class ValidationError(ContestError):
    status_code = 400
    message_key = 'submission.invalid_email'


class DuplicateEntryError(ContestError):
    status_code = 400
    message_key = 'submission.duplicate'


class StoreError(ContestError):
    status_code = 500
    message_key = 'submission.store_failed'


class ConfigurationError(ContestError):
    """Misconfigured dependency; the detail is shown to the caller as-is."""

    status_code = 500
    message_key = 'errors.configuration'


class NotificationError(ContestError):
    message_key = 'errors.notification'


class CounterError(ContestError):
    message_key = 'errors.counters'

    def __init__(self, failed_keys: list[str], detail: str | None = None):
        super().__init__(detail or f'failed to increment: {", ".join(failed_keys)}')
        self.failed_keys = failed_keys

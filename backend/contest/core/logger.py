import logging
import os
import sys

_OFF_VALUES = {'OFF', 'DISABLE', 'FALSE', 'NO', '0', 'NONE'}

# logger prefix -> LOG_LEVEL_<suffix>
MODULES_MAP: dict[str, str] = {
    'contest.api': 'API',
    'contest.services': 'SERVICES',
    'contest.services.stores': 'STORE',
    'contest.services.notifier': 'MAIL',
    'uvicorn': 'UVICORN',
    'uvicorn.access': 'ACCESS',
    'httpx': 'HTTPX',
}


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger plus per-module overrides.

    The global level comes from ``LOG_LEVEL`` (or ``level``); any module listed
    in ``MODULES_MAP`` can be tuned with ``LOG_LEVEL_<ALIAS>``, e.g.
    ``LOG_LEVEL_STORE=DEBUG`` or ``LOG_LEVEL_ACCESS=OFF``.
    """
    global_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    global_level = getattr(logging, global_level_str, logging.INFO)

    logging.basicConfig(
        level=global_level,
        format='%(asctime)s - %(levelname)s - [%(name)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
        force=True,
    )

    overrides = []
    for module_name, suffix in MODULES_MAP.items():
        env_name = f'LOG_LEVEL_{suffix}'
        level_str = os.getenv(env_name)
        if not level_str:
            continue
        level_str = level_str.upper()
        logger = logging.getLogger(module_name)
        if level_str in _OFF_VALUES:
            logger.setLevel(logging.CRITICAL + 1)
            overrides.append(f'{suffix}: OFF')
            continue
        module_level = getattr(logging, level_str, None)
        if isinstance(module_level, int):
            logger.setLevel(module_level)
            overrides.append(f'{suffix}: {level_str}')
        else:
            logging.warning('Ignoring %s=%r: not a log level', env_name, level_str)

    logging.info('Logging initialized. Global level: %s', global_level_str)
    if overrides:
        logging.info('Module overrides: %s', ', '.join(overrides))

import logging
import os
import time
import colorlog
from typing import Optional

NOISY_LOGGERS = (
    'gql.transport.aiohttp',
    'gql.transport.aiohttp_websockets',
    'gql.transport.websockets_base',
    'aiohttp.client',
    'uvicorn.access',
)


class GatewayFormatter(colorlog.ColoredFormatter):
    """Pads logger names to a fixed width and appends the time since the previous record"""
    def __init__(self, *args, module_width: int = 25, **kwargs):
        super().__init__(*args, **kwargs)
        self.module_width = module_width
        self._last_created: Optional[float] = None

    def format(self, record):
        name = record.name
        if len(name) > self.module_width:
            name = "..." + name[-(self.module_width - 3):]
        record.padded_name = name.ljust(self.module_width)

        created = record.created
        elapsed = 0 if self._last_created is None else created - self._last_created
        self._last_created = created
        record.elapsed = f"+{int(elapsed * 1000)}ms"

        return super().format(record)


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger with colors, padded names and elapsed times"""
    log_level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(GatewayFormatter(
        '%(asctime)s %(blue)s%(padded_name)s%(reset)s %(log_color)s%(levelname)-8s%(reset)s '
        '%(message)s %(cyan)s%(elapsed)s%(reset)s',
        log_colors={
            'DEBUG':    'cyan',
            'INFO':     'green',
            'WARNING':  'yellow',
            'ERROR':    'red',
            'CRITICAL': 'red,bg_white',
        },
        style='%',
        module_width=25,
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root_logger

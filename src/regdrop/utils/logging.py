import logging
from typing import Optional
from colorama import Fore, Style, init

# Initialize colorama
init()


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name of console records"""

    COLORS = {
        'DEBUG': Fore.BLUE,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }

    def format(self, record):
        # Color a copy so other handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


def setup_logging(log_level: str = 'INFO') -> None:
    """Configure the root logger with a coloured console handler.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than duplicated.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, ColoredFormatter):
            root_logger.removeHandler(handler)
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(console_handler)
    # sklearn and threadpoolctl are chatty at DEBUG during every fit
    logging.getLogger('sklearn').setLevel(logging.WARNING)
    logging.getLogger('threadpoolctl').setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger for the specified module"""
    return logging.getLogger(name)

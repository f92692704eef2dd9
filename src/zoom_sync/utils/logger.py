import sys
from datetime import datetime
from enum import Enum
from typing import Optional, TextIO

from zoom_sync.models.enums import LogLevel, LogCategory


class Colors:
    """ANSI escape codes"""
    RESET = '\033[0m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'


CATEGORY_COLORS = {
    LogCategory.CONFIG: Colors.CYAN,
    LogCategory.HARDWARE: Colors.BRIGHT_BLUE,
    LogCategory.DEVICE: Colors.BLUE,
    LogCategory.PROVIDER: Colors.BRIGHT_GREEN,
    LogCategory.STATE: Colors.BRIGHT_CYAN,
    LogCategory.RENDER: Colors.MAGENTA,
    LogCategory.INPUT: Colors.BRIGHT_YELLOW,
    LogCategory.SYNC: Colors.BRIGHT_WHITE,
    LogCategory.EVENT: Colors.BRIGHT_MAGENTA,
}

# symbol, color
LEVEL_STYLE = {
    LogLevel.DEBUG: ('·', Colors.DIM),
    LogLevel.INFO: ('✓', Colors.GREEN),
    LogLevel.WARN: ('⚠', Colors.YELLOW),
    LogLevel.ERROR: ('✗', Colors.RED),
}

CATEGORY_WIDTH = 9
DETAIL_INDENT = " " * 11


def format_detail(value) -> str:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


class Logger:
    """
    Category-tagged console logger

        [14:23:45] SYNC      ✓ Frame transmitted
                   ├─ kind: IMAGE
                   └─ bytes: 36300

    Lines go to stderr unless another stream is configured. Colours are
    dropped automatically when the stream is not a terminal.
    """

    def __init__(self, min_level: LogLevel = LogLevel.INFO, use_colors: bool = True, stream: Optional[TextIO] = None):
        self.min_level = min_level
        self.use_colors = use_colors
        self.stream = stream

    @property
    def _out(self) -> TextIO:
        return self.stream or sys.stderr

    def _colors_on(self) -> bool:
        if not self.use_colors:
            return False
        isatty = getattr(self._out, "isatty", None)
        return bool(isatty and isatty())

    def enabled_for(self, level: LogLevel) -> bool:
        return level.value >= self.min_level.value

    def _paint(self, text: str, color: str, colors_on: bool) -> str:
        return f"{color}{text}{Colors.RESET}" if colors_on else text

    def log(self, category: LogCategory, message: str, level: LogLevel = LogLevel.INFO, **details):
        if not self.enabled_for(level):
            return

        colors_on = self._colors_on()
        symbol, level_color = LEVEL_STYLE[level]
        stamp = datetime.now().strftime('[%H:%M:%S]')
        cat = self._paint(category.name.ljust(CATEGORY_WIDTH), CATEGORY_COLORS.get(category, Colors.WHITE), colors_on)

        lines = [
            f"{stamp} {cat} {self._paint(symbol, level_color, colors_on)} {self._paint(message, level_color, colors_on)}"
        ]
        items = list(details.items())
        for i, (key, value) in enumerate(items):
            branch = "└─" if i == len(items) - 1 else "├─"
            lines.append(f"{DETAIL_INDENT}{self._paint(branch, Colors.DIM, colors_on)} {key}: {format_detail(value)}")

        print("\n".join(lines), file=self._out, flush=True)

    def debug(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.DEBUG, **kw)
    def info(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.INFO, **kw)
    def warn(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.WARN, **kw)
    def error(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.ERROR, **kw)

    def for_category(self, category: LogCategory) -> 'BoundLogger':
        return BoundLogger(self, category)


class BoundLogger:
    """Logger with a fixed category; module-level `log` objects are these"""

    def __init__(self, base: Logger, category: LogCategory):
        self._base = base
        self._category = category

    def log(self, message: str, level: LogLevel = LogLevel.INFO, category: Optional[LogCategory] = None, **kw):
        self._base.log(category or self._category, message, level, **kw)

    def debug(self, message: str, **kw): self.log(message, LogLevel.DEBUG, **kw)
    def info(self, message: str, **kw): self.log(message, LogLevel.INFO, **kw)
    def warn(self, message: str, **kw): self.log(message, LogLevel.WARN, **kw)
    def error(self, message: str, **kw): self.log(message, LogLevel.ERROR, **kw)


_logger = Logger()


def get_logger() -> Logger:
    return _logger


def configure_logger(min_level: LogLevel = LogLevel.INFO, use_colors: bool = True, stream: Optional[TextIO] = None):
    """
    Adjust the shared logger in place

    Bound loggers created at import time hold a reference to the same
    instance, so they see the change immediately.
    """
    _logger.min_level = min_level
    _logger.use_colors = use_colors
    _logger.stream = stream

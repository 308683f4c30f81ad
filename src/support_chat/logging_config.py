import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

# Records emitted outside a chat request are tagged with "-" instead of a session id.
_DEFAULT_EXTRA = {"session": "-"}

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level:<8}</level> "
    "<magenta>[{extra[session]}]</magenta> <cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS ZZ} | {level:<8} | session={extra[session]} | {name}:{line} - {message}"


class ConsoleLogConsumer:
    """Colored lines on stderr, or stdout for process managers that only collect stdout."""

    def __init__(self, stream: str = "stderr"):
        if stream not in ("stderr", "stdout"):
            raise ValueError(f"Unknown console stream: {stream!r}")
        self._stream = stream

    def register(self, level: str) -> None:
        logger.add(getattr(sys, self._stream), level=level, format=CONSOLE_FORMAT)

    def describe(self, level: str) -> str:
        return f"console ({self._stream}, {level})"


class FileLogConsumer:
    """Rotating log file; ``serialize`` writes one JSON record per line for log shippers."""

    def __init__(
        self,
        path: str = "logs/support_chat.log",
        rotation: str = "10 MB",
        retention: int = 3,
        serialize: bool = False,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention
        self._serialize = serialize

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format=FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            serialize=self._serialize,
        )

    def describe(self, level: str) -> str:
        kind = "json" if self._serialize else "text"
        return f"file ({self._path}, {kind}, {level})"


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
}

_STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
) -> list[str]:
    """Install the relay's log sinks and route uvicorn's stdlib logging through them.

    ``consumers`` comes from the ``LogConsumers`` entry of config.json, e.g.
    ``[{"type": "console", "stream": "stdout"}, {"type": "file", "serialize": true}]``.
    Returns a description of each registered consumer.
    """
    logger.remove()
    logger.configure(extra=_DEFAULT_EXTRA)

    if consumers is None:
        consumers = [{"type": "console"}]

    descriptions: list[str] = []
    unknown: list[str] = []

    for config in consumers:
        sink_type = config.get("type", "")
        cls = _CONSUMER_TYPES.get(sink_type)
        if cls is None:
            unknown.append(sink_type)
            continue

        kwargs = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = config.get("level", level)

        consumer = cls(**kwargs)
        consumer.register(sink_level)
        descriptions.append(consumer.describe(sink_level))

    # Reported once the sinks exist, otherwise the warning has nowhere to go.
    for sink_type in unknown:
        logger.warning(f"Unknown log consumer type: {sink_type!r}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _STDLIB_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    return descriptions

import logging
import sys

# Loggers from our own modules; everything else only shows warnings and up
APP_LOGGERS = (
    "__main__", "main", "models", "database", "ai", "prompts", "recurrence", "xp", "logging_setup",
    "suggestions",
)


class _ThirdPartyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name in APP_LOGGERS or name.split(".")[0] in APP_LOGGERS:
            return True
        # uvicorn access/startup lines stay visible
        if name.startswith("uvicorn"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a single console handler.
    Safe to call more than once (existing handlers are replaced).
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    console_level = logging.getLevelName(level.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(console_level)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    handler.addFilter(_ThirdPartyFilter())
    root.addHandler(handler)

    logging.captureWarnings(True)

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings) -> Optional[Path]:
    """Configure root logging: console always, rotating file when LOG_FILE is set.

    Safe to call more than once; handlers are only attached the first time.
    Returns the log file path if file logging is enabled.
    """
    level = getattr(logging, settings.log_level, logging.INFO)
    fmt = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(h.get_name() == "dlvery.console" for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        console.set_name("dlvery.console")
        root.addHandler(console)

    log_path = None
    if settings.log_file:
        log_path = Path(settings.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        already = any(
            isinstance(h, logging.handlers.RotatingFileHandler)
            and getattr(h, "baseFilename", "") == str(log_path.resolve())
            for h in root.handlers
        )
        if not already:
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(fmt)
            root.addHandler(file_handler)

    # uvicorn installs its own handlers; let its records reach ours too
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True

    return log_path

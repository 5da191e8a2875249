import logging
import re
from typing import Iterable


class RedactingFilter(logging.Filter):
    """Redact key material and secrets from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            msg = re.sub(
                r"(Authorization:?)\s+\S+", r"\1 ***", msg, flags=re.IGNORECASE
            )
            # signing keys may show up as sk=..., secret=..., *_key=...
            msg = re.sub(
                r"(sk|secret|password|key)=\S+", r"\1=***", msg, flags=re.IGNORECASE
            )
            record.msg = msg
            record.args = None
        except Exception:
            pass
        return True


def setup_logging(
    level="INFO",
    loggers: Iterable[str] = ("ledgertree_api", "uvicorn", "uvicorn.access"),
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level)
    f = RedactingFilter()
    # logger filters do not apply to child loggers; handlers see everything
    for handler in logging.getLogger().handlers:
        handler.addFilter(f)
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)

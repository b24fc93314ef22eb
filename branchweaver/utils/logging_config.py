"""
JSON logging for the ``branchweaver`` logger tree.

Each record becomes one line of JSON carrying the branch-pipeline fields
(``branch_id``, ``anchor_id``, ``iteration`` ...) passed through ``extra``.
Records go to the configured log file; warnings and above also go to
stderr.

    logger = get_logger(__name__)
    logger.info("Generated variations", extra={"anchor_id": "a1", "count": 4})

Code working on one lineage binds its ids once:

    log = BranchAdapter(get_logger(__name__), "branch-a1-0", anchor_id="a1")
    log.info("Iteration 2 complete", extra={"iteration": 2, "score": 0.85})
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional, Sequence, Union

from branchweaver.config import get_settings

ROOT_LOGGER = "branchweaver"

# Record attributes copied into the JSON line when set
BRANCH_FIELDS = (
    "branch_id",
    "anchor_id",
    "iteration",
    "score",
    "count",
    "stopped_reason",
    "error",
    "metadata",
)


class BranchJSONFormatter(logging.Formatter):
    def __init__(self, fields: Sequence[str] = BRANCH_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        line: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(
            (field, getattr(record, field))
            for field in self.fields
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class BranchAdapter(logging.LoggerAdapter):
    """Binds ``branch_id`` (and any other fields) to every record.

    Fields passed explicitly through ``extra`` on a call win over bound ones.
    """

    def __init__(self, logger: logging.Logger, branch_id: str, **bound: Any):
        super().__init__(logger, {"branch_id": branch_id, **bound})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def _is_ours(handler: logging.Handler) -> bool:
    return isinstance(handler.formatter, BranchJSONFormatter)


def configure_logging(
    log_file: Optional[str] = None,
    level: Union[int, str, None] = None,
    logger_name: str = ROOT_LOGGER,
) -> logging.Logger:
    """Attach JSON handlers to ``logger_name`` unless it already has them.

    ``log_file`` and ``level`` default to the settings; an empty ``log_file``
    leaves only the stderr handler.
    """
    logger = logging.getLogger(logger_name)
    if any(_is_ours(h) for h in logger.handlers):
        return logger

    settings = get_settings()
    log_file = settings.log_file if log_file is None else log_file
    logger.setLevel(settings.log_level if level is None else level)
    logger.propagate = False

    formatter = BranchJSONFormatter()
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    root = configure_logging()
    if name == ROOT_LOGGER:
        return root
    return root.getChild(name.removeprefix(f"{ROOT_LOGGER}."))

"""Logging setup for hosts embedding the engine.

The engine itself only emits structlog events; it never configures
handlers. Hosts call ``configure_logging(config)`` once with the loaded
``InspectionConfig`` to route those events to the outputs its ``logging``
section names.

Every run binds ``run_id`` through ``structlog.contextvars``. Worker
threads execute in a copy of the submitting context, so events logged by
inspections on the pool carry the id of the run that scheduled them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from brxm_inspect.config.models import InspectionConfig, LoggingConfig, LogOutputConfig

RUN_ID_KEY = "run_id"


def new_run_id() -> str:
    return uuid4().hex[:12]


@contextmanager
def bind_run(run_id: str | None = None) -> Iterator[str]:
    """Bind a run id to every event logged inside the block."""
    rid = run_id or new_run_id()
    with structlog.contextvars.bound_contextvars(**{RUN_ID_KEY: rid}):
        yield rid


def current_run_id() -> str | None:
    value = structlog.contextvars.get_contextvars().get(RUN_ID_KEY)
    return str(value) if value is not None else None


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def configure_logging(config: InspectionConfig | LoggingConfig | None = None) -> None:
    """Route structlog events through stdlib handlers, one per configured output.

    Accepts a full ``InspectionConfig`` (its ``logging`` section is used) or
    a bare ``LoggingConfig``. Without either, INFO and above go to stderr.
    Calling it again replaces the previous handlers.
    """
    from brxm_inspect.config.models import InspectionConfig, LoggingConfig

    if isinstance(config, InspectionConfig):
        settings = config.logging
    else:
        settings = config if config is not None else LoggingConfig()

    root_level = _level(settings.level)
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.setLevel(root_level)
    for output in settings.outputs:
        root.addHandler(_handler_for(output, settings.level, pre_chain))


def _handler_for(
    output: LogOutputConfig,
    default_level: str,
    pre_chain: list[structlog.types.Processor],
) -> logging.Handler:
    handler: logging.Handler
    if output.destination in ("stderr", "stdout"):
        stream = sys.stderr if output.destination == "stderr" else sys.stdout
        handler = logging.StreamHandler(stream)
        colors = stream.isatty()
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        colors = False

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0)

    handler.setLevel(_level(output.level or default_level))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )
    return handler

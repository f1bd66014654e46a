"""
Structured logging setup.
"""
import logging
import sys

import structlog


def setup_logging(development: bool = True, level: int = logging.INFO) -> None:
    """Configure stdlib logging and structlog once per process."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if development:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(processors=processors)


def get_logger(name: str):
    """Return a logger bound to a component name."""
    return structlog.get_logger(name)

"""
Logging integration - masks each record after it has been rendered.

MaskingFormatter lets logging.Formatter render the full line (timestamp,
level, thread, message) and then passes that line through a RedactionEngine.

Components that want their formatters configured by a MaskingConfigurator
implement MaskingLayoutHost and hand their formatters over explicitly.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from .engine import RedactionEngine

DEFAULT_LAYOUT = "%(asctime)s [%(threadName)s] %(levelname)-5s %(name)s - %(message)s"


class MaskingFormatter(logging.Formatter):
    """
    Formatter that masks sensitive values in the rendered record.

    Example:
        engine = RedactionEngine()
        engine.store.add_patterns(r"(token=)(\\w+)")

        handler = logging.StreamHandler()
        handler.setFormatter(MaskingFormatter("%(message)s", engine=engine))
        logging.getLogger("app").addHandler(handler)
        logging.getLogger("app").warning("token=abc123")
        # token=******
    """

    def __init__(
        self,
        fmt: Optional[str] = DEFAULT_LAYOUT,
        datefmt: Optional[str] = None,
        style: str = "%",
        *,
        engine: Optional[RedactionEngine] = None,
    ):
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.engine = engine if engine is not None else RedactionEngine()

    @property
    def store(self):
        """The RuleStore this formatter masks with."""
        return self.engine.store

    def format(self, record: logging.LogRecord) -> str:
        # Covers exception and stack text too, which Formatter appends here
        return self.engine.redact(super().format(record))


class MaskingLayoutHost(ABC):
    """A component that exposes MaskingFormatters for configuration."""

    @abstractmethod
    def get_masking_formatters(self) -> list[MaskingFormatter]:
        """Return every MaskingFormatter this component renders with."""
        pass


class MaskingStreamHandler(logging.StreamHandler, MaskingLayoutHost):
    """StreamHandler (stderr by default) that always masks its output."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        formatter: Optional[MaskingFormatter] = None,
    ):
        super().__init__(stream if stream is not None else sys.stderr)
        self.setFormatter(formatter if formatter is not None else MaskingFormatter())

    def setFormatter(self, fmt: Optional[logging.Formatter]) -> None:
        if not isinstance(fmt, MaskingFormatter):
            raise TypeError(f"{type(self).__name__} requires a MaskingFormatter, got {type(fmt).__name__}")
        super().setFormatter(fmt)

    @property
    def engine(self) -> RedactionEngine:
        return self.formatter.engine

    def get_masking_formatters(self) -> list[MaskingFormatter]:
        return [self.formatter]

"""
Configuration - loads masking rules from the environment into RuleStores.

Settings come from environment variables (and a .env file, via
python-dotenv):

    LOG_MASKING_PROFILE          Built-in profile to start from ("default",
                                 or "none" for no profile)
    LOG_MASKING_PATTERN_<NAME>   Named rule; overrides a profile rule with
                                 the same name. <NAME> is lower-cased and
                                 "_" becomes "-" (LOG_MASKING_PATTERN_API_KEY
                                 -> "api-key")
    LOG_MASKING_PATTERNS         Extra unnamed rules, delimiter-separated
    LOG_MASKING_DELIMITER        Delimiter for LOG_MASKING_PATTERNS (",")
    LOG_MASKING_CHAR             Masking character ("*")
    LOG_LEVEL                    Root log level ("INFO")

The host application builds its RuleStore/RedactionEngine and then calls
MaskingConfigurator.apply(); there is no global registry of engines.
"""

import logging
import os
import threading
import weakref
from dataclasses import dataclass, field
from typing import Mapping, Optional, TextIO

from dotenv import load_dotenv

from .engine import RedactionEngine
from .formatter import DEFAULT_LAYOUT, MaskingFormatter, MaskingLayoutHost, MaskingStreamHandler
from .profiles import get_profile
from .rule_store import DEFAULT_MASKING_CHAR, PATTERN_DELIMITER, RuleStore

logger = logging.getLogger(__name__)

ENV_PREFIX = "LOG_MASKING_"
PATTERN_PREFIX = f"{ENV_PREFIX}PATTERN_"
NO_PROFILE = "none"


@dataclass
class MaskingSettings:
    """Masking configuration, independent of where it was read from."""
    patterns: dict[str, str] = field(default_factory=dict)
    extra_patterns: str = ""
    delimiter: str = PATTERN_DELIMITER
    masking_char: str = DEFAULT_MASKING_CHAR
    profile: Optional[str] = "default"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MaskingSettings":
        """
        Read settings from the environment.

        Args:
            environ: Mapping to read from. Defaults to os.environ, after
                     loading any .env file.

        Returns:
            The parsed settings.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        profile = environ.get(f"{ENV_PREFIX}PROFILE", "default").strip()
        if not profile or profile.lower() == NO_PROFILE:
            profile = None

        patterns = {}
        for key in sorted(environ):
            if key.startswith(PATTERN_PREFIX) and key != PATTERN_PREFIX:
                name = key[len(PATTERN_PREFIX):].lower().replace("_", "-")
                patterns[name] = environ[key]

        return cls(
            patterns=patterns,
            extra_patterns=environ.get(f"{ENV_PREFIX}PATTERNS", ""),
            delimiter=environ.get(f"{ENV_PREFIX}DELIMITER") or PATTERN_DELIMITER,
            masking_char=environ.get(f"{ENV_PREFIX}CHAR", DEFAULT_MASKING_CHAR),
            profile=profile,
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        )

    def named_patterns(self) -> dict[str, str]:
        """Profile rules, overridden by explicitly configured ones."""
        merged = dict(get_profile(self.profile).get_patterns()) if self.profile else {}
        merged.update(self.patterns)
        return merged


class MaskingConfigurator:
    """
    Pushes one MaskingSettings into any number of RuleStores.

    apply() may be called again and again (for example once when the host
    builds its handlers and again when startup completes); after it has
    succeeded for a store, later calls for that store do nothing.
    """

    def __init__(self, settings: MaskingSettings):
        self.settings = settings
        self._lock = threading.Lock()
        self._applied: "weakref.WeakSet[RuleStore]" = weakref.WeakSet()

    def is_applied(self, store: RuleStore) -> bool:
        return store in self._applied

    def apply(self, store: RuleStore) -> bool:
        """
        Load the settings into a store, once.

        Args:
            store: The store to populate.

        Returns:
            True if the store was populated by this call, False if it had
            already been populated earlier.

        Raises:
            ValidationError: If a configured pattern is invalid. The store
                             is not marked as configured, so apply() can be
                             retried after the settings are fixed.
            KeyError: If the configured profile does not exist.
        """
        with self._lock:
            if store in self._applied:
                logger.debug(f"Masking settings already applied to {store!r}")
                return False

            store.set_patterns(self.settings.named_patterns())
            if self.settings.extra_patterns.strip():
                store.add_patterns(self.settings.extra_patterns, self.settings.delimiter)
            store.set_masking_char(self.settings.masking_char)

            self._applied.add(store)
        logger.info(f"Applied masking settings: {store!r}")
        return True

    def apply_to_host(self, host: MaskingLayoutHost) -> int:
        """
        Apply the settings to every formatter a host exposes.

        Returns:
            Number of stores populated by this call.
        """
        return sum(1 for formatter in host.get_masking_formatters() if self.apply(formatter.store))


def configure_logging(
    engine: RedactionEngine,
    level: str = "INFO",
    fmt: str = DEFAULT_LAYOUT,
    stream: Optional[TextIO] = None,
) -> MaskingStreamHandler:
    """
    Route the root logger through a masking handler.

    Args:
        engine: The engine whose rules mask every record.
        level: Root log level name.
        fmt: logging.Formatter layout applied before masking.
        stream: Output stream. Defaults to stderr, which keeps stdout free
                for MCP stdio transport.

    Returns:
        The installed handler.
    """
    handler = MaskingStreamHandler(stream, MaskingFormatter(fmt, engine=engine))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, MaskingStreamHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler

"""
Masking Module - Redacts sensitive values in log lines for Log Masking Sentinel

This module masks secrets inside already-rendered log lines while keeping the
surrounding text (field names, separators, line length) intact, so logs stay
readable without leaking values.

Architecture:
    - RuleStore: Validated, thread-safe set of two-group masking rules
    - RedactionEngine: Applies a store's rules to log lines
    - MaskingFormatter: logging.Formatter that masks every rendered record
    - MaskingConfigurator: Loads rules from the environment into stores
    - profiles/: Built-in rule bundles

Example:
    from masking import RedactionEngine

    engine = RedactionEngine()
    engine.store.add_patterns(r"(token=)([\\w.-]+)")
    engine.redact("login ok token=abc123")
    # "login ok token=******"
"""

from .base_profile import MaskingProfile
from .config import MaskingConfigurator, MaskingSettings, configure_logging
from .engine import RedactionEngine, redact_line
from .formatter import MaskingFormatter, MaskingLayoutHost, MaskingStreamHandler
from .rule_store import Rule, RuleSetSnapshot, RuleStore, ValidationError

__all__ = [
    "MaskingConfigurator",
    "MaskingFormatter",
    "MaskingLayoutHost",
    "MaskingProfile",
    "MaskingSettings",
    "MaskingStreamHandler",
    "RedactionEngine",
    "Rule",
    "RuleSetSnapshot",
    "RuleStore",
    "ValidationError",
    "configure_logging",
    "redact_line",
]

"""
RedactionEngine - Masks sensitive values in rendered log lines.

For every match of the combined matcher, the engine works out which rule
fired and overwrites only that rule's value group (group 2) with the masking
character. The identifier group and everything outside the match are left
as they are, and the output always has the same length as the input.

The engine holds no state of its own: each call reads one RuleSetSnapshot
from the RuleStore and never writes to it, so it is safe to share between
logging threads.
"""

import re
from typing import Iterator, Optional

from .rule_store import RuleSetSnapshot, RuleStore


def _value_span(match: re.Match[str], rule_count: int) -> Optional[tuple[int, int]]:
    # Rule i owns groups 2i-1 (identifier) and 2i (value); only one
    # alternative can take part in a given match.
    for index in range(1, rule_count + 1):
        identifier, value = 2 * index - 1, 2 * index
        if match.group(identifier) is not None and match.group(value) is not None:
            return match.span(value)
    return None


def find_spans(line: str, snapshot: RuleSetSnapshot) -> Iterator[tuple[int, int]]:
    """
    Yield the (start, end) span of every value that should be masked.

    Spans come out left to right and never overlap, since each one sits
    inside its own non-overlapping match.
    """
    if snapshot.matcher is None:
        return
    rule_count = len(snapshot.rules)
    for match in snapshot.matcher.finditer(line):
        span = _value_span(match, rule_count)
        if span is not None:
            yield span


def redact_line(line: Optional[str], snapshot: RuleSetSnapshot) -> Optional[str]:
    """
    Mask every value span in `line` using the given snapshot.

    Args:
        line: A fully rendered log line. Empty or None is returned as-is.
        snapshot: The rule set to apply.

    Returns:
        The line with each value span replaced, character for character,
        by the snapshot's masking character.
    """
    if not line or snapshot.matcher is None:
        return line

    pieces = []
    position = 0
    for start, end in find_spans(line, snapshot):
        pieces.append(line[position:start])
        pieces.append(snapshot.masking_char * (end - start))
        position = end

    if not pieces:
        return line
    pieces.append(line[position:])
    return "".join(pieces)


class RedactionEngine:
    """
    Applies a RuleStore's current rules to log lines.

    Example:
        store = RuleStore()
        store.add_patterns(r"(Credit card: )(\\d{4}-\\d{4}-\\d{4}-\\d{4})")
        engine = RedactionEngine(store)

        engine.redact("Credit card: 1234-5678-9012-3456")
        # "Credit card: *******************"

    Thread Safety:
        redact() and redact_batch() may be called from any number of
        threads while the store is being reconfigured; each call sees the
        rules either entirely before or entirely after a change.
    """

    def __init__(self, store: Optional[RuleStore] = None):
        """
        Initialize the RedactionEngine.

        Args:
            store: The RuleStore to read rules from. A new, empty store is
                   created when omitted.
        """
        self.store = store if store is not None else RuleStore()

    def redact(self, text: Optional[str]) -> Optional[str]:
        """
        Mask sensitive values in a single line.

        Args:
            text: The rendered log line.

        Returns:
            The masked line. Without any configured rules this is `text`
            unchanged.
        """
        return redact_line(text, self.store.snapshot())

    def redact_batch(self, texts: list[str]) -> list[str]:
        """
        Mask several lines against the same rule set.

        Args:
            texts: Rendered log lines.

        Returns:
            The masked lines, in input order.
        """
        snapshot = self.store.snapshot()
        return [redact_line(text, snapshot) for text in texts]

    def __repr__(self) -> str:
        return f"<RedactionEngine: {self.store!r}>"

"""
RuleStore - Validated, thread-safe storage for masking rules.

Every rule is a regular expression with exactly two capture groups:
    - Group 1: the identifier to keep (e.g. "token=")
    - Group 2: the value to mask (e.g. "abc123")

All active rules are compiled into one combined matcher (an alternation of
every rule), so rule i (1-indexed) owns groups 2i-1 and 2i of that matcher.
Numbered backreferences are renumbered to match, and a leading "(?flags)"
is narrowed to its own rule. A change is only published once that combined
matcher compiles.

Readers never lock. Writers serialize on a single lock, build a complete
RuleSetSnapshot (rules, matcher and masking character) and publish it with
one reference assignment, so a reader always sees one whole state.
"""

import logging
import re
import threading
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_MASKING_CHAR = "*"
PATTERN_DELIMITER = ","
REQUIRED_GROUPS = 2

# A global inline-flag group such as "(?i)" at the very start of a rule
_LEADING_FLAGS = re.compile(r"^\(\?([aiLmsux]+)\)")
# A conditional on a numbered group, e.g. "(?(1)"
_CONDITIONAL_GROUP = re.compile(r"\(\?\((\d+)\)")
_OCTAL = "01234567"


class ValidationError(ValueError):
    """Raised when a candidate masking rule cannot be accepted."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(reason)
        self.pattern = pattern
        self.reason = reason


@dataclass(frozen=True)
class Rule:
    """A single masking rule."""
    pattern: str  # Regex source with exactly 2 capture groups
    name: Optional[str] = None  # Configuration key, if the rule came from one


@dataclass(frozen=True)
class RuleSetSnapshot:
    """Immutable view of the store, as seen by one redaction call."""
    rules: tuple[Rule, ...] = ()
    matcher: Optional[re.Pattern[str]] = field(default=None, compare=False)
    masking_char: str = DEFAULT_MASKING_CHAR

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(rule.pattern for rule in self.rules)


def validate_pattern(pattern: str) -> re.Pattern[str]:
    """
    Check that a pattern compiles and has exactly two capture groups.

    Args:
        pattern: The regex source to check.

    Returns:
        The compiled pattern.

    Raises:
        ValidationError: If the pattern is not a valid regex, or has a
                         capture group count other than 2.
    """
    try:
        compiled = re.compile(pattern, re.MULTILINE)
    except re.error as e:
        raise ValidationError(pattern, f"Invalid regex pattern: {pattern} - {e}") from e

    if compiled.groups != REQUIRED_GROUPS:
        raise ValidationError(
            pattern,
            f"Pattern must have exactly {REQUIRED_GROUPS} capture groups "
            f"(found {compiled.groups}): {pattern} - First group should match "
            f"the identifier to keep, second group should match the value to redact",
        )
    return compiled


def split_patterns(raw: str, delimiter: str = PATTERN_DELIMITER) -> list[str]:
    """Split a delimited pattern list, dropping blank fragments."""
    fragments = []
    for fragment in raw.split(delimiter):
        fragment = fragment.strip()
        if not fragment:
            logger.warning(f"Skipping empty mask pattern fragment in: {raw!r}")
            continue
        fragments.append(fragment)
    return fragments


def _scoped(pattern: str) -> str:
    # "(?i)rest" -> "(?i:rest)"; Python only accepts global flags at the
    # start of the whole expression, which a combined alternation breaks.
    flags = _LEADING_FLAGS.match(pattern)
    if flags is None:
        return pattern
    rest = pattern[flags.end():]
    if "x" in flags.group(1):
        # A trailing verbose-mode comment runs to the end of the line
        return f"(?{flags.group(1)}:{rest}\n)"
    return f"(?{flags.group(1)}:{rest})"


def shift_group_references(pattern: str, offset: int) -> str:
    """
    Renumber the numbered group references in a rule by `offset`.

    In the combined matcher, rule i's groups are numbered from 2i-1, so a
    "\\1" written against the rule alone has to become "\\(1 + 2(i-1))".
    Both "\\N" backreferences and "(?(N)yes|no)" conditionals are shifted.
    Escaped backslashes, octal escapes, character classes and verbose-mode
    comments are left alone.

    Args:
        pattern: A rule's regex source.
        offset: Number of groups owned by the rules before this one.

    Returns:
        The rewritten source.

    Raises:
        ValidationError: If a shifted backreference would exceed 99, which
                         Python reads as an octal escape instead.
    """
    if offset == 0:
        return pattern

    flags = _LEADING_FLAGS.match(pattern)
    verbose = flags is not None and "x" in flags.group(1)
    out = []
    in_class = False
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]

        if ch == "\\" and i + 1 < n:
            number = _backreference_at(pattern, i) if not in_class else None
            if number is None:
                out.append(pattern[i:i + 2])
                i += 2
                continue
            digits, group = number
            group += offset
            if group > 99:
                raise ValidationError(
                    pattern,
                    f"Backreference \\{digits} cannot be combined with the "
                    f"active patterns (it would become group {group}): {pattern} - "
                    f"use a named group and (?P=name) instead",
                )
            # Wrapped so a following literal digit is not read as part of it
            out.append(f"(?:\\{group})")
            i += 1 + len(digits)
            continue

        if in_class:
            if ch == "]":
                in_class = False
            out.append(ch)
            i += 1
            continue

        if ch == "[":
            # "]" right after "[" or "[^" is a literal, not the end of the class
            end = i + 1
            if end < n and pattern[end] == "^":
                end += 1
            if end < n and pattern[end] == "]":
                end += 1
            out.append(pattern[i:end])
            in_class = True
            i = end
            continue

        if verbose and ch == "#":
            end = pattern.find("\n", i)
            end = n if end == -1 else end
            out.append(pattern[i:end])
            i = end
            continue

        conditional = _CONDITIONAL_GROUP.match(pattern, i)
        if conditional is not None:
            out.append(f"(?({int(conditional.group(1)) + offset})")
            i = conditional.end()
            continue

        out.append(ch)
        i += 1
    return "".join(out)


def _backreference_at(pattern: str, i: int) -> Optional[tuple[str, int]]:
    # Same reading as Python's parser: "\0", "\0oo" and three octal digits
    # are octal escapes; otherwise one or two digits name a group.
    first = pattern[i + 1]
    if first not in "123456789":
        return None
    digits = first
    if i + 2 < len(pattern) and pattern[i + 2].isdigit():
        second = pattern[i + 2]
        third = pattern[i + 3] if i + 3 < len(pattern) else ""
        if first in _OCTAL and second in _OCTAL and third and third in _OCTAL:
            return None
        digits += second
    return digits, int(digits)


def combine_rules(rules: tuple[Rule, ...]) -> str:
    """Return the alternation source in which rule i owns groups 2i-1 and 2i."""
    return "|".join(
        _scoped(shift_group_references(rule.pattern, REQUIRED_GROUPS * index))
        for index, rule in enumerate(rules)
    )


def compile_rules(rules: tuple[Rule, ...]) -> Optional[re.Pattern[str]]:
    """
    Compile rules into one alternation matcher.

    Every rule is expected to have passed validate_pattern() already. Rules
    can still clash once combined, e.g. two rules defining the same named
    group, so the combination is checked as a whole here.

    Returns:
        The matcher, or None when there are no rules. Should the regex
        engine fail in a way validation cannot foresee (recursion limits),
        an ERROR is logged and None is returned as well.

    Raises:
        ValidationError: If the combined expression does not compile.
    """
    if not rules:
        return None

    combined = combine_rules(rules)
    try:
        matcher = re.compile(combined, re.MULTILINE)
    except (re.error, OverflowError) as e:
        raise ValidationError(
            combined, f"Patterns cannot be combined into one matcher: {e}"
        ) from e
    except RecursionError as e:
        logger.error(f"Failed to compile combined pattern: {e}")
        return None

    logger.info(f"Compiled pattern with {len(rules)} mask pattern(s)")
    return matcher


class RuleStore:
    """
    Owner of the active masking rules and masking character.

    Example:
        store = RuleStore()
        store.add_patterns(r"(token=)(\\w+)")
        store.set_masking_char("#")
        store.get_patterns()
        # ('(token=)(\\w+)',)

    Thread Safety:
        Any number of threads may read (snapshot(), get_*()) while another
        thread mutates. Mutations are serialized, and each one either
        publishes a fully compiled new state or leaves the old one in place.
    """

    def __init__(self, masking_char: str = DEFAULT_MASKING_CHAR):
        self._lock = threading.Lock()
        self._snapshot = RuleSetSnapshot()
        if masking_char != DEFAULT_MASKING_CHAR:
            self.set_masking_char(masking_char)

    def snapshot(self) -> RuleSetSnapshot:
        """Return the current, internally consistent rule set."""
        return self._snapshot

    def set_masking_char(self, masking_char: Optional[str]) -> None:
        """
        Set the character used to overwrite masked values.

        Args:
            masking_char: The masking character. Empty input is ignored and
                          longer input is cut to its first character; both
                          cases log a warning rather than raising.
        """
        if not masking_char:
            logger.warning(
                f"Masking character cannot be null or empty, keeping: "
                f"{self._snapshot.masking_char}"
            )
            return

        if len(masking_char) > 1:
            logger.warning(
                f"Masking character should be a single character, "
                f"using first character: {masking_char[0]}"
            )
            masking_char = masking_char[0]

        with self._lock:
            self._snapshot = replace(self._snapshot, masking_char=masking_char)
        logger.info(f"Set masking character to: '{masking_char}'")

    def add_patterns(self, raw: str, delimiter: str = PATTERN_DELIMITER) -> None:
        """
        Append one or more delimiter-separated patterns to the active rules.

        The batch is all-or-nothing: if any fragment fails validation, or
        the batch cannot be combined with the active rules, nothing is added.

        Args:
            raw: Patterns separated by `delimiter`, e.g.
                 "(token=)(\\w+),(password=)(\\S+)".
            delimiter: Separator between patterns. Defaults to ",".

        Raises:
            ValidationError: If any fragment is invalid, or clashes with an
                             active rule (e.g. a duplicate group name).
        """
        if not raw or not raw.strip():
            logger.warning("Mask pattern cannot be null or empty")
            return

        fragments = split_patterns(raw, delimiter)
        for fragment in fragments:
            validate_pattern(fragment)
        if not fragments:
            return

        with self._lock:
            current = self._snapshot
            rules = current.rules + tuple(Rule(pattern=p) for p in fragments)
            self._snapshot = RuleSetSnapshot(
                rules=rules,
                matcher=compile_rules(rules),
                masking_char=current.masking_char,
            )
        logger.info(f"Added {len(fragments)} mask pattern(s)")

    def set_patterns(self, patterns: Mapping[str, str]) -> None:
        """
        Replace all active rules with the given named patterns.

        An empty mapping is ignored and the current rules are kept.

        Args:
            patterns: Mapping of rule name to two-group pattern.

        Raises:
            ValidationError: If any pattern is invalid, or the patterns
                             clash once combined. The current rules are
                             left untouched.
        """
        if not patterns:
            logger.info("No mask patterns supplied, keeping current patterns")
            return

        rules = tuple(Rule(pattern=pattern, name=name) for name, pattern in patterns.items())
        for rule in rules:
            validate_pattern(rule.pattern)

        with self._lock:
            self._snapshot = RuleSetSnapshot(
                rules=rules,
                matcher=compile_rules(rules),
                masking_char=self._snapshot.masking_char,
            )
        logger.info(f"Set {len(rules)} mask pattern(s): {', '.join(patterns)}")

    def get_masking_char(self) -> str:
        return self._snapshot.masking_char

    def get_patterns(self) -> tuple[str, ...]:
        """Return the active pattern sources, in match priority order."""
        return self._snapshot.patterns

    def get_pattern_by_name(self, name: str) -> Optional[str]:
        """Return the pattern registered under `name`, or None."""
        for rule in self._snapshot.rules:
            if rule.name == name:
                return rule.pattern
        return None

    def get_pattern_map(self) -> dict[str, str]:
        """Return the named rules as a name -> pattern mapping."""
        return {rule.name: rule.pattern for rule in self._snapshot.rules if rule.name is not None}

    def pattern_count(self) -> int:
        return len(self._snapshot.rules)

    def __repr__(self) -> str:
        return f"<RuleStore: {self.pattern_count()} pattern(s), masking_char={self.get_masking_char()!r}>"

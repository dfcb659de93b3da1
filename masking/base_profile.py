"""
Base Masking Profile - Abstract base class for bundles of masking rules.

A profile is a named set of two-group rules that a deployment can start
from instead of listing every pattern in its environment. For example:
    - profiles/default.py for credentials and card numbers
    - a payments profile for PAN/CVV fields
    - a healthcare profile for patient identifiers

Each profile defines:
    - name: Unique identifier for the profile
    - description: Human-readable description
    - get_patterns(): Returns rule name -> two-group pattern
"""

from abc import ABC, abstractmethod


class MaskingProfile(ABC):
    """
    Abstract base class for masking profiles.

    Every pattern must have exactly two capture groups: the identifier to
    keep and the value to mask. Patterns are validated when the profile is
    applied to a RuleStore, not here.

    Example:
        class PaymentsProfile(MaskingProfile):
            @property
            def name(self) -> str:
                return "payments"

            @property
            def description(self) -> str:
                return "Card verification values"

            def get_patterns(self) -> dict[str, str]:
                return {"cvv": r"(?i)(cvv\\s*[:=]\\s*)(\\d{3,4})"}
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this profile (e.g., 'default', 'payments')."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this profile covers."""
        pass

    @abstractmethod
    def get_patterns(self) -> dict[str, str]:
        """Return rule name -> two-group pattern, in match priority order."""
        pass

    def __repr__(self) -> str:
        return f"<MaskingProfile: {self.name}>"

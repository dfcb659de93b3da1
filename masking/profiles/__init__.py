"""
Masking Profiles Package

Built-in bundles of masking rules. Select one with LOG_MASKING_PROFILE.

Available profiles:
    - default: Tokens, passwords, API keys, secrets, card numbers, AWS key IDs

To add a new profile:
    1. Create a new module (e.g., payments.py)
    2. Subclass MaskingProfile
    3. Implement get_patterns() returning two-group patterns
    4. Add it to PROFILES below
"""

from ..base_profile import MaskingProfile
from .default import DefaultProfile, DEFAULT_PROFILE

PROFILES: dict[str, MaskingProfile] = {
    DEFAULT_PROFILE.name: DEFAULT_PROFILE,
}


def get_profile(name: str) -> MaskingProfile:
    """
    Look up a built-in profile by name.

    Raises:
        KeyError: If no profile has that name.
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"Unknown masking profile '{name}' (available: {', '.join(PROFILES)})") from None


__all__ = ["DefaultProfile", "DEFAULT_PROFILE", "PROFILES", "get_profile"]

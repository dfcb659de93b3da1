"""
Default Masking Profile - Stock rules for credentials and card numbers.

Each rule keeps the field name and its separator and masks only the value,
in both key=value and JSON ("key": "value") forms:
    - token=abc123            -> token=******
    - "password": "hunter2"   -> "password": "*******"

Patterns covered:
    - Tokens
    - Passwords
    - API keys
    - Secrets
    - Credit card numbers (with or without separators)
    - AWS Access Key IDs
"""

from ..base_profile import MaskingProfile

# Optional quote, field name, optional quote, ':' or '=', optional quote
_FIELD = r"""(["']?{name}["']?\s*[:=]\s*["']?)"""


class DefaultProfile(MaskingProfile):
    """Default profile, applied unless LOG_MASKING_PROFILE says otherwise."""

    @property
    def name(self) -> str:
        return "default"

    @property
    def description(self) -> str:
        return "Tokens, passwords, API keys, secrets, card numbers and AWS key IDs"

    def get_patterns(self) -> dict[str, str]:
        return {
            "token": r"(?i)" + _FIELD.format(name="token") + r"([\w\-.]+)",
            "password": r"(?i)" + _FIELD.format(name="password") + r"""([^\s"',}]+)""",
            "api-key": r"(?i)" + _FIELD.format(name=r"api[-_]?key") + r"([\w\-.]+)",
            "secret": r"(?i)" + _FIELD.format(name="secret") + r"([\w\-.]+)",
            "credit-card": (
                r"(?i)" + _FIELD.format(name=r"credit[\s_-]*card")
                + r"(\d{4}(?:[\s-]?\d{4}){3})"
            ),
            "aws-access-key": (
                r"(?i)" + _FIELD.format(name="aws_access_key_id")
                + r"((?:AKIA|ASIA)[A-Z0-9]{16})"
            ),
        }


DEFAULT_PROFILE = DefaultProfile()

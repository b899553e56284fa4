"""Core application utilities."""

from .config import Settings, get_settings
from .security import decrypt_token, encrypt_token, verify_slack_signature

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Security
    "verify_slack_signature",
    "encrypt_token",
    "decrypt_token",
]

"""Security utilities: Slack request signing and token encryption."""

import hashlib
import hmac
import logging
import time

from cryptography.fernet import Fernet, InvalidToken

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Slack rejects requests older than five minutes; so do we
SIGNATURE_MAX_AGE_SECONDS = 60 * 5


def verify_slack_signature(
    body: bytes,
    timestamp: str,
    signature: str,
    signing_secret: str | None,
    now: float | None = None,
) -> bool:
    """
    Verify Slack request signature using HMAC-SHA256.

    See: https://api.slack.com/authentication/verifying-requests-from-slack
    """
    if not signing_secret:
        logger.warning("Slack signing secret not configured")
        return False

    try:
        request_timestamp = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - request_timestamp) > SIGNATURE_MAX_AGE_SECONDS:
        logger.warning("Slack request timestamp too old")
        return False

    sig_basestring = f"v0:{timestamp}:{body.decode()}"
    expected_sig = "v0=" + hmac.new(
        signing_secret.encode(),
        sig_basestring.encode(),
        hashlib.sha256
    ).hexdigest()

    return hmac.compare_digest(expected_sig, signature)


def encrypt_token(token: str, settings: Settings | None = None) -> str:
    """Encrypt a token for secure storage."""
    settings = settings or get_settings()
    if not settings.encryption_enabled:
        logger.warning("Encryption not configured - storing token in plaintext")
        return token

    f = Fernet(settings.encryption_key.encode())
    return f.encrypt(token.encode()).decode()


def decrypt_token(encrypted: str, settings: Settings | None = None) -> str:
    """Decrypt a stored token. Raises ValueError if the token cannot be decrypted."""
    settings = settings or get_settings()
    if not settings.encryption_enabled:
        return encrypted

    f = Fernet(settings.encryption_key.encode())
    try:
        return f.decrypt(encrypted.encode()).decode()
    except InvalidToken as e:
        logger.error("Failed to decrypt workspace token")
        raise ValueError("Stored workspace token could not be decrypted") from e

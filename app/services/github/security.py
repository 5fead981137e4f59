import hashlib
import hmac
from typing import Optional, Union

SIGNATURE_PREFIX = "sha256="


def sign_payload(payload_body: bytes, secret_token: str) -> str:
    """Compute the X-Hub-Signature-256 value GitHub sends for `payload_body`."""
    digest = hmac.new(
        secret_token.encode("utf-8"), msg=payload_body, digestmod=hashlib.sha256
    ).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    payload_body: Union[bytes, str], secret_token: str, signature_header: Optional[str]
) -> bool:
    """
    Verify that the payload was sent from GitHub by validating the SHA256 signature.

    Args:
        payload_body: raw request body, exactly as received
        secret_token: the webhook secret
        signature_header: the X-Hub-Signature-256 header value

    Returns:
        True if the signature is valid, False otherwise.
    """
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False

    if isinstance(payload_body, str):
        payload_body = payload_body.encode("utf-8")

    # Constant-time comparison of equal-length ASCII strings
    return hmac.compare_digest(
        sign_payload(payload_body, secret_token).encode("ascii"),
        signature_header.encode("ascii", errors="replace"),
    )

"""
reCAPTCHA adapter - Implements CaptchaVerifier protocol with httpx.
"""

import logging

import httpx

logger = logging.getLogger(__name__)

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaVerifier:
    """Checks tokens against Google's siteverify endpoint."""

    def __init__(self, secret: str, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self._secret = secret
        self._client = client or httpx.Client(timeout=timeout)

    def verify(self, token: str) -> bool:
        """
        Return True when Google accepts the token.

        Network failures and malformed responses count as a failed check.
        """
        if not token:
            return False
        try:
            response = self._client.post(
                SITEVERIFY_URL, data={"secret": self._secret, "response": token}
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("CAPTCHA verification request failed: %s", e)
            return False

        if payload.get("success"):
            return True
        logger.warning("CAPTCHA verification failed: %s", payload.get("error-codes"))
        return False

    def close(self) -> None:
        self._client.close()


class AllowAllCaptcha:
    """Development stand-in used when no reCAPTCHA secret is configured."""

    def verify(self, token: str) -> bool:
        return True

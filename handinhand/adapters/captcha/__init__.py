"""CAPTCHA adapters - Human-verification token checks."""

from .recaptcha import AllowAllCaptcha, RecaptchaVerifier

__all__ = ["AllowAllCaptcha", "RecaptchaVerifier"]

"""Challenge (CAPTCHA) verification adapters."""

from website_backend.adapters.captcha.base import AbstractVerifier, VerificationOutcome
from website_backend.adapters.captcha.turnstile import TurnstileVerifier

__all__ = [
    "AbstractVerifier",
    "TurnstileVerifier",
    "VerificationOutcome",
]

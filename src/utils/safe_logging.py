"""
Safe Logging with PII Protection
================================

Counterparty data (phone numbers, e-mail addresses, names, identity
documents) and API credentials must never reach log output. Database
errors are the main leak: driver messages echo the bound parameters of
the failing statement, so they go through ``PIIProtector.sanitize_message``
before being logged.
"""

import logging
import re
from typing import Any, Dict


class PIIProtector:
    """Sanitizes PII and credentials from log text"""

    # Keys whose values are masked in structured log fields
    SENSITIVE_FIELDS = {
        'api_key', 'secret', 'signature', 'token', 'password',
        'phone', 'mobile', 'email', 'name', 'nickname',
        'document', 'identification', 'nationality', 'city',
    }

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

    # International numbers: optional +, 8-15 digits with spaces/dashes
    PHONE_PATTERN = re.compile(r'(?<![\w.])\+?\d(?:[\s-]?\d){7,14}(?![\w.])')

    # Hex signatures / secrets of 32+ chars
    SECRET_PATTERN = re.compile(r'\b[a-fA-F0-9]{32,}\b')

    @staticmethod
    def mask_string(value: str, visible_chars: int = 4) -> str:
        """
        Mask a string, showing only last few characters

        Returns:
            Masked string like "****5678"
        """
        if not value or len(value) <= visible_chars:
            return "****"
        return "*" * (len(value) - visible_chars) + value[-visible_chars:]

    @staticmethod
    def mask_email(email: str) -> str:
        """Mask email address as "d***@***.com"."""
        if '@' not in email:
            return "***@***.com"

        local, domain = email.split('@', 1)
        masked_local = local[0] + "***" if len(local) > 1 else "***"
        masked_domain = "***." + domain.split('.')[-1]
        return f"{masked_local}@{masked_domain}"

    @staticmethod
    def mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask values of sensitive keys; other values pass through."""
        masked = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(field in key_lower for field in PIIProtector.SENSITIVE_FIELDS):
                masked[key] = PIIProtector.mask_string(str(value)) if value else "****"
            elif isinstance(value, dict):
                masked[key] = PIIProtector.mask_dict(value)
            else:
                masked[key] = value
        return masked

    @staticmethod
    def sanitize_message(message: str) -> str:
        """Remove e-mails, phone numbers and secrets from free text."""
        message = PIIProtector.EMAIL_PATTERN.sub("***@***.com", message)
        message = PIIProtector.SECRET_PATTERN.sub("***", message)
        message = PIIProtector.PHONE_PATTERN.sub("***-****", message)
        return message


class SafeLogger:
    """
    Logger with automatic PII protection

    Handlers come from the application's logging configuration; this
    wrapper only sanitizes what is passed in.

    Usage:
        logger = SafeLogger(__name__)
        logger.info("User updated", taker="S1234", phone="+57 300 123 4567")
        # Output: "User updated | taker=S1234 | phone=***********4567"
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _format_safe_message(self, message: str, **kwargs) -> str:
        safe_message = PIIProtector.sanitize_message(message)
        if kwargs:
            safe_kwargs = PIIProtector.mask_dict(kwargs)
            kwargs_str = " | ".join(f"{k}={v}" for k, v in safe_kwargs.items())
            return f"{safe_message} | {kwargs_str}"
        return safe_message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_safe_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_safe_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_safe_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_safe_message(message, **kwargs))


def get_safe_logger(name: str) -> SafeLogger:
    """
    Get a safe logger instance

    Args:
        name: Logger name (use __name__)
    """
    return SafeLogger(name)

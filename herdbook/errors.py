"""Exceptions raised by the herdbook client and dashboard"""

from __future__ import annotations

from typing import Any, Dict, Optional


class HerdbookError(Exception):
    """Base exception for herdbook errors"""
    pass


class ConfigurationError(HerdbookError):
    """Invalid configuration values"""
    pass


class TransactionApiError(HerdbookError):
    """A transaction API call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FetchError(TransactionApiError):
    """Network failure, unparsable body or non-2xx response"""
    pass


class NotFoundError(TransactionApiError):
    """The requested transaction does not exist"""
    pass


class ValidationError(TransactionApiError):
    """The API rejected the payload with per-field messages"""

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, status_code: Optional[int] = 422):
        super().__init__(message, status_code=status_code)
        self.field_errors: Dict[str, str] = {}
        for field, messages in (errors or {}).items():
            if isinstance(messages, (list, tuple)):
                if messages:
                    self.field_errors[field] = str(messages[0])
            elif messages:
                self.field_errors[field] = str(messages)

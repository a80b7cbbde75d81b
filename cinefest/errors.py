#!/usr/bin/env python3
"""Exception types shared by the catalog browser clients."""

from typing import Optional


class CinefestError(Exception):
    """Base class for all catalog browser errors"""


class ConfigError(CinefestError):
    """Configuration file exists but cannot be used"""


class BackendError(CinefestError):
    """A call to the backend REST service failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

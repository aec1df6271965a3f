"""
Standardised error handling for VMX Monitor.
"""

from vmx_monitor.core.constants import (
    CAPABILITY_ERRORS, ENUMERATION_ERRORS, REMOTE_ERRORS,
)


class MonitorError(Exception):
    """Raised when the tracker or the queue client hits a known error condition."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    @property
    def category(self) -> str:
        return category_for(self.code)


def category_for(code: str) -> str:
    if code in CAPABILITY_ERRORS:
        return "capability"
    if code in ENUMERATION_ERRORS:
        return "enumeration"
    if code in REMOTE_ERRORS:
        return "remote"
    return "unknown"


def is_remote_error(code: str) -> bool:
    return code in REMOTE_ERRORS

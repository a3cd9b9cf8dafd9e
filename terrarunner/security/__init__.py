"""
Security module for terrarunner.

This module provides input validation for workspaces and command
arguments, and redaction of sensitive values from captured output.
"""

from .sanitizer import InputSanitizer, SecurityError
from .redactor import OutputRedactor, REDACTED

__all__ = ["InputSanitizer", "SecurityError", "OutputRedactor", "REDACTED"]

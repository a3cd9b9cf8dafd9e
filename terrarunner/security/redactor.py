"""
Redaction of sensitive values from Terraform output.

Captured stdout/stderr may echo variable values back (plan diffs, error
messages). OutputRedactor masks the values of variables declared
``sensitive`` before they are logged or returned.
"""

from typing import Any, Iterable, List


REDACTED = "[REDACTED]"


class OutputRedactor:
    """
    Redacts sensitive values from text output.

    Example:
        >>> redactor = OutputRedactor(["secret123"])
        >>> redactor.redact("Connecting with key: secret123")
        'Connecting with key: [REDACTED]'
    """

    def __init__(self, sensitive_values: Iterable[Any] = ()):
        self.sensitive_values: List[str] = []
        self.add_sensitive_values(sensitive_values)

    def add_sensitive_values(self, sensitive_values: Iterable[Any]):
        """
        Add values to the redaction list.

        Only non-empty strings are registered. Numbers and booleans would
        match unrelated digits and words in plan output, and str() of a
        list or dict never matches what Terraform prints.
        """
        for value in sensitive_values:
            if not isinstance(value, str) or not value:
                continue
            if value not in self.sensitive_values:
                self.sensitive_values.append(value)
        # Longest first so a value containing another is masked whole
        self.sensitive_values.sort(key=len, reverse=True)

    def redact(self, text: str) -> str:
        """
        Replace any occurrence of sensitive values with [REDACTED].

        Uses exact, case-sensitive string matching (not regex).
        """
        if not text:
            return text

        redacted = text
        for sensitive_value in self.sensitive_values:
            redacted = redacted.replace(sensitive_value, REDACTED)

        return redacted

    def clear(self):
        """Forget all registered sensitive values."""
        self.sensitive_values.clear()

"""
Input sanitization and validation for terrarunner.

This module validates inputs before they reach a Terraform process:
- Workspace paths (existence, directory, allowed roots)
- Terraform variable names supplied on the command line
- Command arguments handed to subprocess
"""

import os
import re
from typing import Iterable, Optional


class SecurityError(ValueError):
    """Raised when a security validation fails."""
    pass


class InputSanitizer:
    """
    Provides input validation and sanitization methods.

    All methods raise SecurityError if validation fails.
    """

    # Terraform variable name pattern: must start with letter/underscore,
    # can contain letters, digits, underscores, hyphens
    VARIABLE_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_-]*$')

    MAX_VARIABLE_NAME_LENGTH = 255
    MAX_COMMAND_ARG_LENGTH = 10000

    @staticmethod
    def sanitize_path(path: str, allowed_roots: Optional[Iterable[str]] = None) -> str:
        """
        Validate and normalize a workspace directory path.

        Security checks:
        - Resolves to absolute path, following symlinks
        - Must exist and be a directory
        - Must be within one of ``allowed_roots`` when any are configured

        Args:
            path: Path to validate
            allowed_roots: Directories the workspace must live under.
                Empty or None allows any location.

        Returns:
            Normalized absolute path

        Raises:
            SecurityError: If path is unsafe
        """
        if not path:
            raise SecurityError("Path cannot be empty")

        try:
            abs_path = os.path.realpath(os.path.expanduser(path))
        except (OSError, ValueError) as e:
            raise SecurityError(f"Invalid path: {e}")

        if not os.path.exists(abs_path):
            raise SecurityError(f"Path does not exist: {path}")

        if not os.path.isdir(abs_path):
            raise SecurityError(f"Path is not a directory: {path}")

        roots = [
            os.path.realpath(os.path.expanduser(root))
            for root in (allowed_roots or [])
            if root
        ]
        if roots and not any(
            abs_path == root or abs_path.startswith(root.rstrip(os.sep) + os.sep)
            for root in roots
        ):
            raise SecurityError(
                f"Path must be within an allowed workspace root: {path}"
            )

        return abs_path

    @staticmethod
    def sanitize_variable_name(name: str) -> str:
        """
        Validate Terraform variable name.

        Rules:
        - Must start with letter or underscore
        - Can contain letters, digits, underscores, hyphens
        - Max length: 255 characters

        Args:
            name: Variable name to validate

        Returns:
            Validated variable name (unchanged if valid)

        Raises:
            SecurityError: If name is invalid
        """
        if not name:
            raise SecurityError("Variable name cannot be empty")

        if len(name) > InputSanitizer.MAX_VARIABLE_NAME_LENGTH:
            raise SecurityError(
                f"Variable name too long (max {InputSanitizer.MAX_VARIABLE_NAME_LENGTH})"
            )

        if not InputSanitizer.VARIABLE_NAME_PATTERN.match(name):
            raise SecurityError(
                f"Invalid variable name '{name}': must start with letter/underscore, "
                "contain only letters, digits, underscores, hyphens"
            )

        return name

    @staticmethod
    def is_safe_command_arg(arg: str) -> bool:
        """
        Check if a command argument is safe to pass to subprocess.

        Commands always run with shell=False; this rejects arguments
        the OS would truncate or refuse.

        Args:
            arg: Command argument to check

        Returns:
            True if safe, False otherwise
        """
        if '\x00' in arg:
            return False

        if len(arg) > InputSanitizer.MAX_COMMAND_ARG_LENGTH:
            return False

        return True

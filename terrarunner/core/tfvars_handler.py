"""
Handler for Terraform variable files.

Writes the transient JSON variables file consumed by plan/apply/destroy
and loads user-supplied .tfvars / .tfvars.json input files.
"""

import json
import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)

TF_VARS_FILE_NAME = "variables.tfvars.json"


class TfvarsHandler:
    """Write, remove, and parse Terraform variable files."""

    @staticmethod
    def var_file_path(workspace: str) -> str:
        return os.path.join(workspace, TF_VARS_FILE_NAME)

    @staticmethod
    def filter_null_values(variables: Dict[str, Any]) -> Dict[str, Any]:
        """Drop top-level entries whose value is None."""
        return {name: value for name, value in variables.items() if value is not None}

    @staticmethod
    def write_var_file(workspace: str, variables: Dict[str, Any]) -> str:
        """
        Write variables to ``variables.tfvars.json`` in the workspace.

        Entries with a None value are omitted so Terraform falls back to
        the variable's declared default.

        Args:
            workspace: Directory Terraform runs in.
            variables: Dict of variable name to value.

        Returns:
            Path of the written file.

        Raises:
            TypeError: If a value is not JSON-serialisable.
            ValueError: If a float value is NaN or infinite.
            OSError: If the file cannot be written.
        """
        path = TfvarsHandler.var_file_path(workspace)
        payload = TfvarsHandler.filter_null_values(variables or {})

        # Serialise first so a bad value never leaves a partial file behind
        content = json.dumps(payload, indent=2, allow_nan=False)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

        return path

    @staticmethod
    def remove_var_file(workspace: str) -> None:
        """
        Delete the variables file if present.

        Failures are logged, never raised.
        """
        path = TfvarsHandler.var_file_path(workspace)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception(f"Cleanup of variables file {path} failed")

    @staticmethod
    def parse_tfvars(file_path: str) -> Dict[str, Any]:
        """
        Parse an HCL .tfvars file and return variable name-value pairs.

        Args:
            file_path: Path to the .tfvars file.

        Returns:
            Dict of variable name to value.

        Raises:
            FileNotFoundError: If file does not exist.
            ValueError: If file cannot be parsed.
        """
        import hcl2

        from .terraform_parser import normalize_hcl_value

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                parsed = hcl2.load(f)
        except FileNotFoundError:
            raise
        except Exception as e:
            raise ValueError(f"Failed to parse tfvars file: {e}")

        return {
            normalize_hcl_value(key): normalize_hcl_value(value)
            for key, value in parsed.items()
            if not key.startswith("__")
        }

    @staticmethod
    def load_variables(file_path: str) -> Dict[str, Any]:
        """
        Load a variables file, choosing the format by extension.

        ``.json`` files are read as JSON objects; anything else as HCL.

        Raises:
            FileNotFoundError: If file does not exist.
            ValueError: If file cannot be parsed or is not an object.
        """
        if not file_path.endswith(".json"):
            return TfvarsHandler.parse_tfvars(file_path)

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse variables file: {e}")

        if not isinstance(loaded, dict):
            raise ValueError(f"Variables file {file_path} must contain a JSON object")
        return loaded

"""
Terraform configuration parser.

Reads ``variable`` blocks from the .tf files of a workspace so callers
can check for missing required inputs and know which values are
sensitive before running a plan.
"""

import glob
import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set
import hcl2

logger = logging.getLogger(__name__)


def normalize_hcl_value(value: Any) -> Any:
    """
    Normalize a value produced by hcl2.

    Some python-hcl2 releases keep the double quotes around string
    literals and block labels; strip them so values compare as plain
    Python strings. Lists and dicts are normalized recursively.
    """
    if isinstance(value, str):
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            return value[1:-1]
        return value
    if isinstance(value, list):
        return [normalize_hcl_value(item) for item in value]
    if isinstance(value, dict):
        return {
            normalize_hcl_value(k): normalize_hcl_value(v)
            for k, v in value.items()
            if not (isinstance(k, str) and k.startswith("__"))
        }
    return value


@dataclass
class TerraformVariable:
    """
    A Terraform variable declaration.

    Attributes:
        name: Variable name
        type: Type expression (string, number, bool, list(string), ...)
        default: Default value (None if no default)
        description: Human-readable description
        sensitive: Whether variable is marked as sensitive
        has_default: Whether a default was declared (a default may be null)
    """
    name: str
    type: str = "any"
    default: Optional[Any] = None
    description: str = ""
    sensitive: bool = False
    has_default: bool = False

    def is_required(self) -> bool:
        """A variable with no declared default must be supplied."""
        return not self.has_default


class TerraformParser:
    """
    Parser for the variable declarations of a Terraform workspace.
    """

    def __init__(self, workspace: str):
        self.workspace = workspace
        self._variables: Optional[List[TerraformVariable]] = None

    def parse_variables(self) -> List[TerraformVariable]:
        """
        Parse all .tf files in the workspace for variable blocks.

        Files that fail to parse are logged and skipped; terraform
        itself reports syntax errors on init/validate.
        """
        if self._variables is not None:
            return self._variables

        variables: List[TerraformVariable] = []
        tf_files = sorted(glob.glob(os.path.join(self.workspace, "*.tf")))

        if not tf_files:
            logger.warning(f"No .tf files found in {self.workspace}")
            self._variables = []
            return self._variables

        logger.debug(f"Found {len(tf_files)} Terraform files")

        for tf_file in tf_files:
            variables.extend(self._parse_file_variables(tf_file))

        self._variables = variables
        logger.debug(f"Parsed {len(variables)} variables")

        return self._variables

    def _parse_file_variables(self, tf_file: str) -> List[TerraformVariable]:
        try:
            with open(tf_file, 'r', encoding='utf-8') as f:
                parsed = hcl2.load(f)
        except Exception as e:
            logger.error(f"HCL parse error in {tf_file}: {e}")
            return []

        variables = []
        for var_block in parsed.get('variable', []):
            for var_name, var_config in var_block.items():
                variables.append(self._create_variable(var_name, var_config or {}))

        return variables

    def _create_variable(self, name: str, config: Dict[str, Any]) -> TerraformVariable:
        config = normalize_hcl_value(config)
        return TerraformVariable(
            name=normalize_hcl_value(name),
            type=self._extract_type(config.get('type', 'any')),
            default=config.get('default'),
            description=config.get('description', '') or '',
            sensitive=bool(config.get('sensitive', False)),
            has_default='default' in config,
        )

    @staticmethod
    def _extract_type(type_value: Any) -> str:
        """Normalize a type expression; hcl2 renders it as "${string}"."""
        if isinstance(type_value, list) and len(type_value) == 1:
            type_value = type_value[0]
        text = str(type_value)
        if text.startswith("${") and text.endswith("}"):
            text = text[2:-1]
        return text

    def missing_required(self, values: Iterable[str]) -> List[str]:
        """Return names of required variables absent from ``values``."""
        provided = set(values)
        return [
            var.name for var in self.parse_variables()
            if var.is_required() and var.name not in provided
        ]

    def sensitive_names(self) -> Set[str]:
        return {var.name for var in self.parse_variables() if var.sensitive}

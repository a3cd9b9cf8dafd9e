"""
Core Terraform execution functionality for terrarunner.

This module provides the business logic for driving Terraform:
- Sequencing init/plan/apply/destroy/validate/show
- Writing the transient variables file
- Executing commands and capturing their output
- Inspecting workspace variable declarations
"""

from .executor import TerraformExecutor, TerraformExecutorError
from .system_cmd import SystemCmd, CommandResult
from .terraform_parser import TerraformParser, TerraformVariable
from .tfvars_handler import TfvarsHandler, TF_VARS_FILE_NAME

__all__ = [
    "TerraformExecutor",
    "TerraformExecutorError",
    "SystemCmd",
    "CommandResult",
    "TerraformParser",
    "TerraformVariable",
    "TfvarsHandler",
    "TF_VARS_FILE_NAME",
]

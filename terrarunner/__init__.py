"""
terrarunner - run Terraform init/plan/apply/destroy from a service process.
"""

__version__ = "1.0.0"

from .core import (
    CommandResult,
    SystemCmd,
    TerraformExecutor,
    TerraformExecutorError,
)

__all__ = [
    "__version__",
    "CommandResult",
    "SystemCmd",
    "TerraformExecutor",
    "TerraformExecutorError",
]

"""
Default settings for terrarunner.

These are the default values used when no configuration file or
environment override exists.
"""

DEFAULT_SETTINGS = {
    "version": "1.0.0",

    "terraform": {
        # Overrides the per-call executor path when non-blank
        "binary_location": "",
        "default_executor": "terraform",
        # Exported to Terraform as TF_LOG
        "log_level": "INFO",
    },

    "log": {
        "level": "INFO",
        "file": False,
        "terraform_stdout_stderr": True,
    },

    "security": {
        # Empty list allows workspaces anywhere
        "allowed_workspace_roots": [],
    },
}

# Environment variable -> (setting key, kind)
ENV_OVERRIDES = {
    "TERRAFORM_BINARY_LOCATION": ("terraform.binary_location", "str"),
    "TERRAFORM_DEFAULT_EXECUTOR": ("terraform.default_executor", "str"),
    "TERRAFORM_LOG_LEVEL": ("terraform.log_level", "str"),
    "LOG_TERRAFORM_STDOUT_STDERR": ("log.terraform_stdout_stderr", "bool"),
    "TERRARUNNER_LOG_LEVEL": ("log.level", "str"),
    "TERRARUNNER_ALLOWED_ROOTS": ("security.allowed_workspace_roots", "paths"),
}

"""
Terraform command sequencing.

TerraformExecutor runs the init -> plan -> apply/destroy lifecycle in a
workspace. Input variables reach Terraform through a transient
``variables.tfvars.json`` file; the log verbosity through TF_LOG.
Any unsuccessful step raises TerraformExecutorError with the captured
stderr and stops the sequence.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..security.sanitizer import InputSanitizer, SecurityError
from .system_cmd import CommandResult, SystemCmd
from .tfvars_handler import TF_VARS_FILE_NAME, TfvarsHandler

if TYPE_CHECKING:
    from ..config.settings import Settings

logger = logging.getLogger(__name__)

TF_PLAN_FILE_NAME = "tfplan.binary"
DEFAULT_TERRAFORM_BINARY = "terraform"


class TerraformExecutorError(Exception):
    """Raised when a Terraform step cannot run or exits unsuccessfully."""

    def __init__(self, operation: str, message: str, error_output: str = ""):
        super().__init__(message)
        self.operation = operation
        self.message = message
        self.error_output = error_output

    def __str__(self) -> str:
        if self.error_output:
            return f"{self.message} Error: {self.error_output}"
        return self.message


class TerraformExecutor:
    """
    Runs Terraform lifecycle commands against a workspace directory.

    Args:
        system_cmd: Process runner used for every invocation
        log_stdout_stderr: Log Terraform output lines as they arrive
        custom_terraform_binary: When non-blank, used instead of the
            per-call executor path
        terraform_log_level: Value exported as TF_LOG
        allowed_workspace_roots: Directories workspaces must live under
    """

    def __init__(
        self,
        system_cmd: Optional[SystemCmd] = None,
        log_stdout_stderr: bool = True,
        custom_terraform_binary: Optional[str] = None,
        terraform_log_level: str = "INFO",
        allowed_workspace_roots: Optional[List[str]] = None,
    ):
        self.system_cmd = system_cmd or SystemCmd()
        self.log_stdout_stderr = log_stdout_stderr
        self.custom_terraform_binary = custom_terraform_binary
        self.terraform_log_level = terraform_log_level
        self.allowed_workspace_roots = list(allowed_workspace_roots or [])

    @classmethod
    def from_settings(
        cls, settings: "Settings", system_cmd: Optional[SystemCmd] = None
    ) -> "TerraformExecutor":
        return cls(
            system_cmd=system_cmd,
            log_stdout_stderr=settings.log_terraform_output,
            custom_terraform_binary=settings.terraform_binary_location,
            terraform_log_level=settings.terraform_log_level,
            allowed_workspace_roots=settings.allowed_workspace_roots,
        )

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def init(self, executor_path: Optional[str], workspace: str) -> None:
        """Run ``terraform init``."""
        result = self._execute(
            self._build_command(executor_path, "init", "-no-color"),
            workspace,
            {},
        )
        self._check(result, "init", "Terraform init failed.")

    def validate(self, executor_path: Optional[str], workspace: str) -> CommandResult:
        """
        Run init, then ``terraform validate -json``.

        The validate result is returned whether or not it succeeded;
        only a failed init raises.
        """
        self.init(executor_path, workspace)
        return self._execute(
            self._build_command(executor_path, "validate", "-json", "-no-color"),
            workspace,
            {},
        )

    def plan(
        self,
        executor_path: Optional[str],
        variables: Optional[Dict[str, Any]],
        env_variables: Optional[Dict[str, str]],
        workspace: str,
    ) -> CommandResult:
        """Run init, then ``terraform plan`` with the given variables."""
        self.init(executor_path, workspace)
        result = self._execute_with_variables(
            self._build_command(executor_path, "plan", "-input=false", "-no-color"),
            variables,
            env_variables,
            workspace,
        )
        return self._check(result, "plan", "Terraform plan failed.")

    def apply(
        self,
        executor_path: Optional[str],
        variables: Optional[Dict[str, Any]],
        env_variables: Optional[Dict[str, str]],
        workspace: str,
    ) -> CommandResult:
        """Run init and plan, then ``terraform apply -auto-approve``."""
        self.plan(executor_path, variables, env_variables, workspace)
        result = self._execute_with_variables(
            self._build_command(
                executor_path, "apply", "-auto-approve", "-input=false", "-no-color"
            ),
            variables,
            env_variables,
            workspace,
        )
        return self._check(result, "apply", "Terraform apply failed.")

    def destroy(
        self,
        executor_path: Optional[str],
        variables: Optional[Dict[str, Any]],
        env_variables: Optional[Dict[str, str]],
        workspace: str,
    ) -> CommandResult:
        """Run init and plan, then ``terraform destroy -auto-approve``."""
        self.plan(executor_path, variables, env_variables, workspace)
        result = self._execute_with_variables(
            self._build_command(
                executor_path, "destroy", "-auto-approve", "-input=false", "-no-color"
            ),
            variables,
            env_variables,
            workspace,
        )
        return self._check(result, "destroy", "Terraform destroy failed.")

    def plan_as_json(
        self,
        executor_path: Optional[str],
        variables: Optional[Dict[str, Any]],
        env_variables: Optional[Dict[str, str]],
        workspace: str,
    ) -> str:
        """
        Run init, plan into a binary plan file, and render it with
        ``terraform show -json``.

        Returns:
            The JSON document printed by ``terraform show``.
        """
        self.init(executor_path, workspace)
        plan_result = self._execute_with_variables(
            self._build_command(
                executor_path,
                "plan",
                "-input=false",
                "-no-color",
                f"-out={TF_PLAN_FILE_NAME}",
            ),
            variables,
            env_variables,
            workspace,
        )
        self._check(plan_result, "plan", "Terraform plan failed.")

        show_result = self._execute(
            self._build_command(executor_path, "show", "-json", TF_PLAN_FILE_NAME),
            workspace,
            env_variables,
        )
        self._check(show_result, "show", "Reading Terraform plan as JSON failed.")
        return show_result.stdout

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _terraform_binary(self, executor_path: Optional[str]) -> str:
        custom = (self.custom_terraform_binary or "").strip()
        if custom:
            return custom
        return (executor_path or "").strip() or DEFAULT_TERRAFORM_BINARY

    def _build_command(self, executor_path: Optional[str], *args: str) -> List[str]:
        return [self._terraform_binary(executor_path), *args]

    def _terraform_log_config(self) -> Dict[str, str]:
        return {"TF_LOG": self.terraform_log_level}

    def _check(self, result: CommandResult, operation: str, message: str) -> CommandResult:
        if not result.success:
            logger.error(message)
            raise TerraformExecutorError(operation, message, result.stderr)
        return result

    def _resolve_workspace(self, workspace: str) -> str:
        try:
            return InputSanitizer.sanitize_path(workspace, self.allowed_workspace_roots)
        except SecurityError as e:
            logger.error(f"Invalid workspace {workspace!r}: {e}")
            raise TerraformExecutorError("workspace", "Invalid workspace.", str(e)) from e

    @staticmethod
    def _check_command_args(cmd: List[str]) -> None:
        for arg in cmd:
            if not InputSanitizer.is_safe_command_arg(arg):
                logger.error("Unsafe command argument rejected")
                raise TerraformExecutorError(
                    cmd[1] if len(cmd) > 1 else "command",
                    "Unsafe command argument.",
                    repr(arg[:80]),
                )

    def _execute_with_variables(
        self,
        cmd: List[str],
        variables: Optional[Dict[str, Any]],
        env_variables: Optional[Dict[str, str]],
        workspace: str,
    ) -> CommandResult:
        """Run a var-consuming command with the variables file in place."""
        workspace = self._resolve_workspace(workspace)
        cmd = cmd + [f"-var-file={TF_VARS_FILE_NAME}"]
        self._check_command_args(cmd)
        try:
            self._create_variables_file(variables, workspace)
            return self._execute(cmd, workspace, env_variables)
        finally:
            logger.info("Cleaning up variables file")
            TfvarsHandler.remove_var_file(workspace)

    def _execute(
        self,
        cmd: List[str],
        workspace: str,
        env_variables: Optional[Dict[str, str]],
    ) -> CommandResult:
        workspace = self._resolve_workspace(workspace)
        self._check_command_args(cmd)

        env = dict(env_variables or {})
        env.update(self._terraform_log_config())
        return self.system_cmd.execute(cmd, workspace, self.log_stdout_stderr, env)

    def _create_variables_file(
        self, variables: Optional[Dict[str, Any]], workspace: str
    ) -> None:
        logger.info("Creating variables file")
        try:
            TfvarsHandler.write_var_file(workspace, variables or {})
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Creating variables file failed: {e}")
            raise TerraformExecutorError(
                "variables", "Creating variables file failed.", str(e)
            ) from e

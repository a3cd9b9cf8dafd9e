"""
Command-line entry point for terrarunner.

Thin wrappers over ``terrarunner.core.TerraformExecutor``.
"""

import json
import logging
import sys
from typing import Any, Callable, Dict, Iterable, Tuple

import click

from . import __version__
from .config import Settings
from .core import TerraformExecutor, TerraformExecutorError, TerraformParser, TfvarsHandler
from .security import InputSanitizer, OutputRedactor, SecurityError
from .utils import setup_logging, validate_terraform_installed, validate_workspace_is_terraform

logger = logging.getLogger(__name__)


def _parse_pairs(pairs: Iterable[str], option: str) -> Iterable[Tuple[str, str]]:
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint=option)
        yield key, value


def _parse_var_value(raw: str) -> Any:
    """Interpret a --var value as JSON when possible, else as a plain string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _collect_variables(var_files: Tuple[str, ...], pairs: Tuple[str, ...]) -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    for var_file in var_files:
        try:
            variables.update(TfvarsHandler.load_variables(var_file))
        except (OSError, ValueError) as e:
            raise click.BadParameter(str(e), param_hint="--var-file")

    for key, value in _parse_pairs(pairs, "--var"):
        try:
            InputSanitizer.sanitize_variable_name(key)
        except SecurityError as e:
            raise click.BadParameter(str(e), param_hint="--var")
        variables[key] = _parse_var_value(value)
    return variables


def _build_executor(ctx: click.Context, workspace: str, variables: Dict[str, Any]) -> TerraformExecutor:
    settings: Settings = ctx.obj["settings"]
    executor = TerraformExecutor.from_settings(settings)

    if variables and validate_workspace_is_terraform(workspace):
        parser = TerraformParser(workspace)
        sensitive = parser.sensitive_names()
        executor.system_cmd.set_redactor(OutputRedactor(
            variables[name] for name in sensitive
            if isinstance(variables.get(name), str)
        ))
        missing = parser.missing_required(
            name for name, value in variables.items() if value is not None
        )
        if missing:
            logger.warning(f"Required variables without a value: {', '.join(missing)}")

    return executor


def _run(action: Callable[[], Any]) -> Any:
    """Run an executor action, turning TerraformExecutorError into exit code 1."""
    try:
        return action()
    except TerraformExecutorError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        if e.error_output:
            click.echo(e.error_output, err=True)
        sys.exit(1)


def workspace_options(func):
    func = click.option(
        "--executor", "executor_path", default=None,
        help="Terraform binary for this run (overridden by a configured binary location).",
    )(func)
    func = click.option(
        "--workspace", "-w", default=".", show_default=True,
        type=click.Path(exists=True, file_okay=False),
        help="Directory containing the Terraform configuration.",
    )(func)
    return func


def variable_options(func):
    func = click.option(
        "--env", "env_pairs", multiple=True, metavar="KEY=VALUE",
        help="Environment variable for the Terraform process (repeatable).",
    )(func)
    func = click.option(
        "--var-file", "var_files", multiple=True,
        type=click.Path(exists=True, dir_okay=False),
        help="Variables file, .tfvars (HCL) or .json (repeatable).",
    )(func)
    func = click.option(
        "--var", "var_pairs", multiple=True, metavar="KEY=VALUE",
        help="Input variable; VALUE is parsed as JSON when possible (repeatable).",
    )(func)
    return func


def _executor_path(ctx: click.Context, executor_path: str) -> str:
    return executor_path or ctx.obj["settings"].default_executor


@click.group()
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None,
              help="Settings file (default: TERRARUNNER_CONFIG or the user config dir).")
@click.option("--log-level", default=None, help="Log level for terrarunner itself.")
@click.option("--binary", default=None, help="Terraform binary location for every command.")
@click.version_option(__version__, prog_name="terrarunner")
@click.pass_context
def cli(ctx: click.Context, config_file: str, log_level: str, binary: str) -> None:
    """terrarunner - run Terraform lifecycle commands in a workspace."""
    settings = Settings(config_file)
    if binary:
        settings.set("terraform.binary_location", binary)
    setup_logging(
        log_level or settings.get("log.level", "INFO"),
        log_file=bool(settings.get("log.file", False)),
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command("init")
@workspace_options
@click.pass_context
def init_cmd(ctx: click.Context, workspace: str, executor_path: str) -> None:
    """Run terraform init."""
    executor = _build_executor(ctx, workspace, {})
    _run(lambda: executor.init(_executor_path(ctx, executor_path), workspace))
    click.secho("Terraform init completed.", fg="green")


@cli.command("validate")
@workspace_options
@click.pass_context
def validate_cmd(ctx: click.Context, workspace: str, executor_path: str) -> None:
    """Run terraform init and validate; exit 1 if the configuration is invalid."""
    executor = _build_executor(ctx, workspace, {})
    result = _run(lambda: executor.validate(_executor_path(ctx, executor_path), workspace))
    click.echo(result.stdout)
    if not result.success:
        if result.stderr:
            click.echo(result.stderr, err=True)
        sys.exit(1)


def _lifecycle_command(name: str, help_text: str):
    @cli.command(name, help=help_text)
    @workspace_options
    @variable_options
    @click.pass_context
    def command(ctx, workspace, executor_path, var_pairs, var_files, env_pairs):
        variables = _collect_variables(var_files, var_pairs)
        env = dict(_parse_pairs(env_pairs, "--env"))
        executor = _build_executor(ctx, workspace, variables)
        operation = getattr(executor, name)
        result = _run(lambda: operation(_executor_path(ctx, executor_path), variables, env, workspace))
        click.echo(result.stdout)

    return command


plan_cmd = _lifecycle_command("plan", "Run terraform init and plan.")
apply_cmd = _lifecycle_command("apply", "Run terraform init, plan and apply -auto-approve.")
destroy_cmd = _lifecycle_command("destroy", "Run terraform init, plan and destroy -auto-approve.")


@cli.command("plan-json")
@workspace_options
@variable_options
@click.pass_context
def plan_json_cmd(ctx, workspace, executor_path, var_pairs, var_files, env_pairs):
    """Run terraform plan and print it as JSON (terraform show -json)."""
    variables = _collect_variables(var_files, var_pairs)
    env = dict(_parse_pairs(env_pairs, "--env"))
    executor = _build_executor(ctx, workspace, variables)
    plan_json = _run(
        lambda: executor.plan_as_json(_executor_path(ctx, executor_path), variables, env, workspace)
    )
    click.echo(plan_json)


@cli.command("variables")
@click.option("--workspace", "-w", default=".", show_default=True,
              type=click.Path(exists=True, file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def variables_cmd(workspace: str, as_json: bool) -> None:
    """List the variables declared by the workspace."""
    variables = TerraformParser(workspace).parse_variables()

    if as_json:
        click.echo(json.dumps([
            {
                "name": var.name,
                "type": var.type,
                "required": var.is_required(),
                "sensitive": var.sensitive,
                "default": None if var.sensitive else var.default,
                "description": var.description,
            }
            for var in variables
        ], indent=2))
        return

    if not variables:
        click.echo("No variables declared")
        return

    for var in variables:
        flags = []
        if var.is_required():
            flags.append("required")
        if var.sensitive:
            flags.append("sensitive")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{var.name:<30} {var.type}{suffix}")


@cli.command("check")
@workspace_options
@click.pass_context
def check_cmd(ctx: click.Context, workspace: str, executor_path: str) -> None:
    """Check that Terraform is installed and the workspace has .tf files."""
    settings: Settings = ctx.obj["settings"]
    binary = settings.terraform_binary_location or _executor_path(ctx, executor_path)

    installed, version = validate_terraform_installed(binary)
    if installed:
        click.secho(f"Terraform: {version}", fg="green")
    else:
        click.secho(f"Terraform: '{binary}' not found", fg="red")

    has_config = validate_workspace_is_terraform(workspace)
    if has_config:
        click.secho(f"Workspace: {workspace}", fg="green")
    else:
        click.secho(f"Workspace: no .tf files in {workspace}", fg="yellow")

    if not installed:
        sys.exit(1)


def main():
    """Console script entry point."""
    return cli(obj={})

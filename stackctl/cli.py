#!/usr/bin/env python3
"""Command line entry point for stackctl.

    stackctl deploy <environment> [project-name] [region] [--templates-location L] [--yes]
    stackctl delete <environment> [project-name] [region] [--confirm STACK]
    stackctl invalidate <environment> [project-name] [region] [paths ...]
    stackctl outputs <stack-name> <region> [env|json|table|github-secrets]

Rendered outputs are written to stdout; progress and errors go to stderr.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, NoReturn, Optional, Sequence

from stackctl.clients import AwsClients
from stackctl.config import ENVIRONMENTS, RuntimeSettings
from stackctl.derived import add_derived_values
from stackctl.errors import StackctlError, UsageError
from stackctl.formatter import FORMATS, render
from stackctl.invalidation import invalidate_cache
from stackctl.lifecycle import run_deploy
from stackctl.models import Outcome
from stackctl.outputs import collect_outputs
from stackctl.resolver import resolve_environment
from stackctl.stacks import require_stack
from stackctl.teardown import delete_stack
from stackctl.utils.logger import configure_logging, get_logger

logger = get_logger("stackctl.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

ClientFactory = Callable[[str, Optional[str]], AwsClients]


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports usage problems as UsageError (exit 1)."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        raise UsageError(message)


def _default_clients(region: str, profile: Optional[str]) -> AwsClients:
    return AwsClients(region, profile=profile)


def _prompt(text: str) -> str:
    try:
        return input(text)
    except EOFError:
        return ""


def _ask_yes(text: str) -> bool:
    return _prompt(text).strip().lower() in {"y", "yes"}


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("environment", help=f"Target environment ({', '.join(ENVIRONMENTS)})")
    parser.add_argument("project_name", nargs="?", help="Project name (default: my-app-<environment>)")
    parser.add_argument("region", nargs="?", help="AWS region (default: us-east-1)")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="stackctl", description="Deploy, inspect and tear down CloudFormation environments")
    parser.add_argument("--base-dir", help="Directory holding parameters/ and templates/ (default: cwd)")
    sub = parser.add_subparsers(dest="command", required=True)

    deploy = sub.add_parser("deploy", help="Create or update the environment stack")
    _add_target_arguments(deploy)
    deploy.add_argument("--templates-location", help="Template directory or https:// URL prefix")
    deploy.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")

    delete = sub.add_parser("delete", help="Empty storage, remove secrets and delete the stack")
    _add_target_arguments(delete)
    delete.add_argument("--confirm", help="Stack name typed as confirmation (skips the prompt)")

    invalidate = sub.add_parser("invalidate", help="Invalidate the environment's CloudFront cache")
    _add_target_arguments(invalidate)
    invalidate.add_argument("paths", nargs="*", default=["/*"], help="Paths to invalidate (default: /*)")

    outputs = sub.add_parser("outputs", help="Extract stack and nested stack outputs")
    outputs.add_argument("stack_name", help="Name of the CloudFormation stack")
    outputs.add_argument("region", help="AWS region (e.g., us-east-1)")
    outputs.add_argument("format", nargs="?", default="env", help=f"Output format ({', '.join(FORMATS)})")
    outputs.add_argument("--db-password", help="Substitute this password into generated database URLs")

    return parser


def _cmd_deploy(args: argparse.Namespace, settings: RuntimeSettings, clients_for: ClientFactory) -> int:
    env = resolve_environment(
        args.environment,
        args.project_name,
        args.region,
        templates_location=args.templates_location,
        base_dir=args.base_dir or settings.base_dir,
    )
    clients = clients_for(env.region, settings.aws_profile)
    account_id = clients.verify_credentials()

    confirm = (lambda _text: True) if args.yes else _ask_yes
    result = run_deploy(env, clients, confirm=confirm, settings=settings, account_id=account_id)
    if not result.ok:
        return EXIT_FAILURE
    if result.outcome is Outcome.SUCCESS:
        table = add_derived_values(collect_outputs(clients, env.stack_name), env.stack_name, env.region)
        logger.info("Stack Outputs:")
        print(render(table, "table"))
        logger.info(f"Deployment of {env.name} environment completed.")
    return EXIT_OK


def _cmd_delete(args: argparse.Namespace, settings: RuntimeSettings, clients_for: ClientFactory) -> int:
    env = resolve_environment(args.environment, args.project_name, args.region, require_artifacts=False)
    clients = clients_for(env.region, settings.aws_profile)
    clients.verify_credentials()

    confirm = (lambda _text: args.confirm) if args.confirm is not None else _prompt
    result = delete_stack(env, clients, confirm, settings=settings)
    return EXIT_OK if result.ok else EXIT_FAILURE


def _cmd_invalidate(args: argparse.Namespace, settings: RuntimeSettings, clients_for: ClientFactory) -> int:
    env = resolve_environment(args.environment, args.project_name, args.region, require_artifacts=False)
    clients = clients_for(env.region, settings.aws_profile)
    clients.verify_credentials()

    invalidate_cache(env, clients, args.paths, settings=settings)
    return EXIT_OK


def _cmd_outputs(args: argparse.Namespace, settings: RuntimeSettings, clients_for: ClientFactory) -> int:
    if args.format not in FORMATS:
        raise UsageError(f"Invalid output format: {args.format}. Must be one of: {', '.join(FORMATS)}")
    clients = clients_for(args.region, settings.aws_profile)
    clients.verify_credentials()

    require_stack(clients, args.stack_name, args.region)
    logger.info(f"Stack found: {args.stack_name}")
    table = collect_outputs(clients, args.stack_name)
    add_derived_values(table, args.stack_name, args.region, password=args.db_password)
    print(render(table, args.format))
    logger.info("Output extraction completed!")
    return EXIT_OK


_COMMANDS = {
    "deploy": _cmd_deploy,
    "delete": _cmd_delete,
    "invalidate": _cmd_invalidate,
    "outputs": _cmd_outputs,
}


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    settings: Optional[RuntimeSettings] = None,
    clients_for: ClientFactory = _default_clients,
) -> int:
    settings = settings or RuntimeSettings.load()
    configure_logging(settings.log_level, settings.log_format)
    try:
        args = build_parser().parse_args(list(argv) if argv is not None else None)
        return _COMMANDS[args.command](args, settings, clients_for)
    except StackctlError as exc:
        logger.error(exc.message)
        return exc.exit_code
    except KeyboardInterrupt:
        logger.warning("Interrupted. Provider-side operations continue; re-run to reconcile.")
        return EXIT_INTERRUPTED


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()

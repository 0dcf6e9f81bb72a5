"""
Command-line interface for wc-envc.

Commands:
- encrypt  Encrypt the values of .env files
- decrypt  Decrypt .env.enc files
- setenv   Persist the variables of a plain .env file
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from wc_envc import __version__
from wc_envc.core.config import EnvcConfig
from wc_envc.core.crypto.engine import Direction
from wc_envc.core.errors import EnvcError, OperationCancelled
from wc_envc.core.logging import configure_root_logger
from wc_envc.core.memory import terminate_on_sigterm
from wc_envc.utils.paths import count_variables, default_input_name, find_env_files
from wc_envc.utils.setenv import export_file
from wc_envc.workflow.batch import OverwritePolicy
from wc_envc.workflow.prompts import Colors, Prompter, TerminalPrompter, colored
from wc_envc.workflow.session import Session, SessionOptions

logger = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130


# ---------------------------------------------------------------------------
# Mode selection
# ---------------------------------------------------------------------------


def overwrite_policy(assume_yes: bool, interactive: bool) -> OverwritePolicy:
    if assume_yes:
        return OverwritePolicy.ASSUME_YES
    return OverwritePolicy.ASK if interactive else OverwritePolicy.REFUSE


def build_session_options(
    args: argparse.Namespace,
    direction: Direction,
    interactive: bool,
    config: EnvcConfig,
    environ=None,
) -> SessionOptions:
    """
    Turn parsed arguments into SessionOptions.

    ``-i`` wins over the positional file. With an input and an output, or
    an input and a password from the flag or the environment, the run is
    one-shot. An input alone preselects that file for a menu-driven run.
    Without any input a terminal gets the directory scan and anything else
    falls back to the default input file.
    """
    environ = os.environ if environ is None else environ
    input_file: Optional[Path] = args.input or args.file
    password_available = args.password is not None or bool(
        environ.get(config.app.password_env_var)
    )
    policy = overwrite_policy(args.yes, interactive)

    if input_file is not None:
        one_shot = args.output is not None or password_available
        return SessionOptions(
            direction=direction,
            files=[input_file],
            output=args.output if one_shot else None,
            password=args.password,
            overwrite=policy,
            review_outputs=not one_shot,
        )

    if interactive:
        if args.output is not None:
            raise EnvcError("-o/--output requires an input file")
        return SessionOptions(
            direction=direction,
            password=args.password,
            overwrite=policy,
            review_outputs=True,
        )

    return SessionOptions(
        direction=direction,
        files=[default_input_name(direction)],
        output=args.output,
        password=args.password,
        overwrite=policy,
    )


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def cmd_transform(args: argparse.Namespace, prompter: Prompter, config: EnvcConfig) -> int:
    direction = Direction.ENCRYPT if args.command == "encrypt" else Direction.DECRYPT
    options = build_session_options(args, direction, prompter.interactive, config)

    session = Session(options, prompter, config=config)
    exit_code = session.run()
    if session.error is not None:
        raise session.error
    return exit_code


def cmd_setenv(args: argparse.Namespace, prompter: Prompter, config: EnvcConfig) -> int:
    path: Optional[Path] = args.file
    if path is None:
        path = _select_plain_file(prompter) if prompter.interactive else default_input_name(Direction.ENCRYPT)
    return export_file(path, prompter, assume_yes=args.yes)


def _select_plain_file(prompter: Prompter) -> Path:
    candidates = find_env_files(Path.cwd(), Direction.ENCRYPT)
    if not candidates:
        raise EnvcError(f"No .env files found in {Path.cwd()}")
    if len(candidates) == 1:
        return candidates[0]
    labels = [f"{p.name} ({count_variables(p)} vars)" for p in candidates]
    return candidates[prompter.choose("Select a file", labels, default=0)]


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_transform_parser(subparsers, name: str, help_text: str) -> None:
    sub = subparsers.add_parser(name, help=help_text)
    sub.add_argument("file", nargs="?", type=Path, metavar="FILE",
                     help="Input file (optional in interactive mode)")
    sub.add_argument("-p", "--password",
                     help="Password (falls back to $WC_ENVC_PASSWORD, stdin, then a prompt)")
    sub.add_argument("-i", "--input", type=Path, help="Input file path")
    sub.add_argument("-o", "--output", type=Path, help="Output file path")
    sub.add_argument("-y", "--yes", action="store_true",
                     help="Skip confirmation prompts (overwrite files)")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wc-envc",
        description="Encrypt/decrypt .env files securely",
        epilog="Run 'wc-envc <COMMAND> -h' for more information on a command.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress to stderr (-vv for debug output)")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    _add_transform_parser(subparsers, "encrypt", "Encrypt .env file")
    _add_transform_parser(subparsers, "decrypt", "Decrypt .env.enc file")

    setenv_parser = subparsers.add_parser("setenv", help="Set variables from a .env file permanently")
    setenv_parser.add_argument("file", nargs="?", type=Path, metavar="FILE", help="Plain .env file")
    setenv_parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    return parser


def _log_level(verbosity: int) -> Optional[str]:
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    return None


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    prompter = TerminalPrompter()

    commands = {
        "encrypt": cmd_transform,
        "decrypt": cmd_transform,
        "setenv": cmd_setenv,
    }

    try:
        config = EnvcConfig.get_instance()
        configure_root_logger(config.logging, level=_log_level(args.verbose))
        with terminate_on_sigterm():
            return commands[args.command](args, prompter, config)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        prompter.error("Interrupted")
        return INTERRUPTED_EXIT_CODE
    except EnvcError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        prompter.error(e.message)
        if isinstance(e, OperationCancelled):
            return 1
        print(
            colored("💡 Run 'wc-envc -h' to see available commands.", Colors.YELLOW, sys.stderr.isatty()),
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())

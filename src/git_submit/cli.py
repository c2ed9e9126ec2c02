"""
Command-line interface for the branch submit tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .cli_prompt import CliPrompt
from .models import (
    ConfigError,
    DirtyWorkingTree,
    ExitCode,
    MAINLINE_BRANCH,
    SubmitAborted,
    SubmitError,
    SubmitResult,
    UntrackedBranch,
)
from .submitter import BranchSubmitter
from . import __version__ as PACKAGE_VERSION


console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"git-submit {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path (~/.git-submit/git-submit.log)."""
    base = Path.home() / ".git-submit"
    base.mkdir(parents=True, exist_ok=True)
    return base / "git-submit.log"


def setup_logging(verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """Setup logging to a rotating file, plus stderr when requested.

    - File log always at DEBUG
    - Console logging disabled by default; enable via --verbose or --log-level
    Returns the log file path.
    """
    log_path = Path(log_file) if log_file else _default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(
        str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    # GitPython is chatty at DEBUG
    logging.getLogger("git").setLevel(logging.INFO)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        ch_level = level_map.get((console_level or "info").lower(), logging.INFO)
        console_handler = RichHandler(console=err_console, rich_tracebacks=True)
        console_handler.setLevel(ch_level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    return log_path


def _maybe_print_log_notice(verbose: bool, console_level: Optional[str], log_path: Path) -> None:
    """Inform user about logging destination and how to enable console logs."""
    if verbose or console_level:
        return
    err_console.print(f"[dim]Logs are written to {log_path}. Use -v or --log-level to see them here.[/dim]")


def _report_error(error: SubmitError) -> None:
    """Explain a failed or stopped submission on stderr."""
    if isinstance(error, ConfigError):
        err_console.print(f"❌ {error}", style="bold red")
        if error.branches:
            err_console.print("Local branches:")
            for name in error.branches:
                err_console.print(f"  • {name}")
    elif isinstance(error, DirtyWorkingTree):
        err_console.print(f"❌ {error}. Commit or stash them first.", style="bold red")
        for path in error.paths:
            err_console.print(f"  • {path}")
    elif isinstance(error, UntrackedBranch):
        if error.pushed:
            err_console.print("📤 Branch pushed with upstream tracking.", style="green")
        err_console.print(f"⚠️  {error}", style="bold yellow")
    elif isinstance(error, SubmitAborted):
        err_console.print(f"❌ **Submit aborted:** {error}", style="bold red")
        for action in error.actions:
            err_console.print(f"  ↩ {action}")
        for failure in error.failures:
            err_console.print(f"  ✗ could not restore {failure}", style="red")
        err_console.print(
            "Local refs were restored. Pushes that already reached the remote were not undone.",
            style="yellow",
        )
    else:
        err_console.print(f"❌ {error}", style="bold red")


def _report_success(result: SubmitResult) -> None:
    console.print(
        f"🎉 Submitted [green]{result.branch}[/green] as {result.commit[:12]} "
        f"to {result.mainline_remote}/{result.mainline}",
        style="bold",
    )
    for error in result.cleanup_errors:
        err_console.print(f"⚠️  Cleanup: {error}", style="yellow")


@click.command()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file path (defaults to ~/.git-submit/git-submit.log)",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path to repository (defaults to current directory)",
)
@click.option(
    "--mainline",
    default=MAINLINE_BRANCH,
    show_default=True,
    help="Name of the mainline branch to submit into.",
)
@click.argument("branch", required=False)
def cli(
    verbose: bool,
    log_level: Optional[str],
    log_file: Optional[Path],
    repo_path: Optional[Path],
    mainline: str,
    branch: Optional[str],
) -> None:
    """
    Submit BRANCH (default: the current branch) to mainline as one rebased commit.

    The branch is squashed and rebased onto the remote mainline, pushed, fast-forwarded
    into mainline, and deleted locally and remotely.

    Example: git-submit feature/my-feature
    """
    log_path = setup_logging(verbose, console_level=log_level, log_file=log_file)
    logger.debug(f"CLI init: cwd={Path.cwd()} repo_path={repo_path} branch={branch}")

    try:
        _maybe_print_log_notice(verbose, log_level, log_path)
        submitter = BranchSubmitter(
            repo_path.resolve() if repo_path else None,
            prompt=CliPrompt(console),
            mainline=mainline,
        )
        result = submitter.submit(branch)
    except SubmitError as e:
        _report_error(e)
        logger.debug("Submit stopped", exc_info=True)
        sys.exit(int(e.exit_code))
    except (click.Abort, KeyboardInterrupt):
        err_console.print("\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Operation cancelled by user", exc_info=True)
        sys.exit(130)
    except Exception as e:
        err_console.print(f"\n💥 **Unexpected Error:** {e}", style="bold red")
        if verbose:
            err_console.print_exception()
        logger.debug("Unexpected error during submit", exc_info=True)
        sys.exit(int(ExitCode.GIT_ERROR))

    _report_success(result)


def main() -> None:
    cli(prog_name="git-submit")


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import cast

from rich.console import Console
from rich.markup import escape

from pausewatch.config import Settings, load_settings
from pausewatch.exceptions import ConfigError, FetchError, SnapshotError, StorageError
from pausewatch.models import WarningRecord

EXIT_INVALID = 2
EXIT_IO_FAILURE = 4


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(message)s",
    )


@lru_cache(maxsize=1)
def _get_console() -> Console:
    return Console()


def _settings(args: argparse.Namespace) -> Settings:
    return load_settings(
        Path(args.config) if args.config else None,
        data_dir=args.data_dir,
        confusable_distance=getattr(args, "distance", None),
    )


def _json_lines_path(raw: str | None) -> Path | None:
    if raw is None or raw.strip() == "-":
        return None
    return Path(raw.strip())


def _emit_json_lines(args: argparse.Namespace, warnings: list[WarningRecord]) -> None:
    if not args.json_lines:
        return
    from pausewatch.reporting import write_json_lines

    write_json_lines(warnings, path=_json_lines_path(args.json_lines), console=_get_console())


def _run_guarded(args: argparse.Namespace, body: Callable[[Settings], int]) -> int:
    _configure_logging(args.log_level)
    console = _get_console()
    try:
        settings = _settings(args)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return EXIT_INVALID
    try:
        return body(settings)
    except FetchError as exc:
        console.print(f"[red]Fetch failed:[/] {escape(str(exc))}")
        return EXIT_IO_FAILURE
    except (StorageError, SnapshotError) as exc:
        console.print(f"[red]Snapshot storage failed:[/] {escape(str(exc))}")
        return EXIT_IO_FAILURE


def _optional_path(raw: str | None) -> Path | None:
    return Path(raw) if raw else None


def cmd_watch(args: argparse.Namespace) -> int:
    from pausewatch.api import watch_index
    from pausewatch.reporting import render_watch

    def body(settings: Settings) -> int:
        result = watch_index(settings, index_file=_optional_path(args.index_file))
        render_watch(result, console=_get_console())
        _emit_json_lines(args, result.warnings)
        return result.exit_code()

    return _run_guarded(args, body)


def cmd_perms(args: argparse.Namespace) -> int:
    from pausewatch.api import audit_permissions
    from pausewatch.reporting import render_audit

    def body(settings: Settings) -> int:
        audit = audit_permissions(settings, perms_file=_optional_path(args.perms_file))
        render_audit(audit, console=_get_console())
        _emit_json_lines(args, list(audit.violations))
        return audit.exit_code()

    return _run_guarded(args, body)


def cmd_run(args: argparse.Namespace) -> int:
    from pausewatch.api import run_all
    from pausewatch.reporting import render_audit, render_watch

    def body(settings: Settings) -> int:
        result, audit = run_all(
            settings,
            index_file=_optional_path(args.index_file),
            perms_file=_optional_path(args.perms_file),
        )
        console = _get_console()
        render_watch(result, console=console)
        render_audit(audit, console=console)
        _emit_json_lines(args, [*result.warnings, *audit.violations])
        return max(result.exit_code(), audit.exit_code())

    return _run_guarded(args, body)


def cmd_status(args: argparse.Namespace) -> int:
    from pausewatch.api import storage_status

    def body(settings: Settings) -> int:
        console = _get_console()
        console.print(f"Snapshot storage: {settings.data_dir}")
        for generation, count in storage_status(settings).items():
            detail = f"{count} packages" if count is not None else "<absent>"
            console.print(f"- {generation}: {detail}")
        return 0

    return _run_guarded(args, body)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to pausewatch.toml")
    parser.add_argument("--data-dir", help="Directory holding snapshot generations")
    parser.add_argument("--log-level", default="INFO", help="Logging level")


def _add_output(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json-lines",
        help="Also write warnings as JSON lines to PATH ('-' for stdout)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pausewatch",
        description="Watch a CPAN package index for confusable and out-of-namespace packages",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser(
        "watch", help="Rotate snapshots, diff the index and check new packages"
    )
    _add_common(watch_parser)
    _add_output(watch_parser)
    watch_parser.add_argument("--index-file", help="Read the index from a local file")
    watch_parser.add_argument(
        "--distance", type=int, help="Edit distance reported as confusable (default 1)"
    )
    watch_parser.set_defaults(func=cmd_watch)

    perms_parser = subparsers.add_parser("perms", help="Audit flagged maintainer permissions")
    _add_common(perms_parser)
    _add_output(perms_parser)
    perms_parser.add_argument("--perms-file", help="Read permissions from a local file")
    perms_parser.set_defaults(func=cmd_perms)

    run_parser = subparsers.add_parser("run", help="Run the index watch and permissions audit")
    _add_common(run_parser)
    _add_output(run_parser)
    run_parser.add_argument("--index-file", help="Read the index from a local file")
    run_parser.add_argument("--perms-file", help="Read permissions from a local file")
    run_parser.add_argument("--distance", type=int, help="Edit distance reported as confusable")
    run_parser.set_defaults(func=cmd_run)

    status_parser = subparsers.add_parser("status", help="Show stored snapshot generations")
    _add_common(status_parser)
    status_parser.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = cast(Callable[[argparse.Namespace], int], args.func)
    return command(args)


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())

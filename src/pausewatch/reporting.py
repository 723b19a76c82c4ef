from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from pausewatch.models import PermissionAudit, RunStatus, WatchResult, WarningRecord


def render_watch(result: WatchResult, *, console: Console | None = None) -> None:
    console = console or Console()
    if result.status is RunStatus.FIRST_RUN:
        console.print(
            "[yellow]First run: stored the current index as baseline, re-run tomorrow.[/yellow]"
        )
        return
    if result.status is RunStatus.NO_NEW_PACKAGES:
        console.print("No new packages.", style="green")
        return
    for warning in result.confusables:
        console.print(f"[red]confusable[/red] {escape(str(warning))}")
    for warning in result.namespace_mismatches:
        console.print(f"[magenta]namespace[/magenta] {escape(str(warning))}")
    summary = result.summary()
    console.print(
        "New packages: {new_packages} | New distributions: {new_distributions} | "
        "Confusable: {confusables} | Namespace: {namespace_mismatches} | "
        "Exit: {exit_code}".format(**summary),
        style="bold",
    )


def render_audit(audit: PermissionAudit, *, console: Console | None = None) -> None:
    console = console or Console()
    if not audit.violations:
        console.print(f"Permissions: {audit.clean} of {audit.total} entries clean.", style="green")
        return
    for violation in audit.violations:
        console.print(f"[red]permission[/red] {escape(str(violation))}")
    console.print(
        f"Permissions: {len(audit.violations)} violations in {audit.total} entries",
        style="bold",
    )


def render_json_lines(warnings: Iterable[WarningRecord]) -> str:
    return "".join(json.dumps(warning.to_dict(), sort_keys=True) + "\n" for warning in warnings)


def write_json_lines(
    warnings: Iterable[WarningRecord],
    *,
    path: Path | None = None,
    console: Console | None = None,
) -> str:
    """Serialize one JSON object per warning; ``path=None`` prints to the console."""
    serialized = render_json_lines(warnings)
    if path is None:
        (console or Console()).out(serialized, end="")
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(serialized, encoding="utf-8")
    return serialized

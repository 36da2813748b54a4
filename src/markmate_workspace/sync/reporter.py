"""Sync report formatting functions.

- ``format_sync_report`` -- post-sync summary for humans.
- ``format_history`` -- commit list for a document.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.git_models import GitCommit
    from .models import SyncReport

from .models import SyncStatus

_HEADLINES = {
    SyncStatus.SYNCED: "Workspace synced",
    SyncStatus.CONFLICT: "Sync stopped: conflict",
    SyncStatus.ERROR: "Sync failed",
}


def format_sync_report(report: SyncReport) -> str:
    """Format a sync report as human-readable text.

    Document sections are only included when non-empty.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    headline = _HEADLINES.get(report.result, f"Sync {report.result.value}")
    if report.aborted:
        headline += " (nothing was sent to git)"
    lines.append(f"{headline} [{report.trigger.value}]")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")

    steps = []
    if report.committed:
        steps.append(f"committed '{report.commit_message}'")
    if report.pulled:
        steps.append("rebased onto remote")
    if report.pushed:
        steps.append("pushed")
    if steps:
        lines.append("Git: " + ", ".join(steps))
    if report.error:
        lines.append(f"Error: {report.error}")
    lines.append("")

    if report.conflicts:
        lines.append("Conflicts (resolve, discard or restore before syncing again):")
        for outcome in report.conflicts:
            lines.append(f"  {outcome.path}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for outcome in report.errors:
            lines.append(f"  {outcome.path}: {outcome.error or 'unknown error'}")
        lines.append("")

    synced = [d for d in report.documents if d.status == SyncStatus.SYNCED]
    if synced:
        lines.append(f"Synced: {len(synced)} open document(s)")

    return "\n".join(lines).rstrip()


def format_history(path: str, commits: list[GitCommit]) -> str:
    if not commits:
        return f"No history for {path}."
    lines = [f"History of {path} ({len(commits)} commit(s)):"]
    for commit in commits:
        lines.append(
            f"  {commit.hash[:8]}  {commit.date}  {commit.author}: {commit.message}"
        )
    return "\n".join(lines)


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    return {
        "result": report.result.value,
        "trigger": report.trigger.value,
        "aborted": report.aborted,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "commit_message": report.commit_message,
        "committed": report.committed,
        "pulled": report.pulled,
        "pushed": report.pushed,
        "error": report.error,
        "counts": {
            "documents": len(report.documents),
            "conflicts": len(report.conflicts),
            "errors": len(report.errors),
        },
        "documents": [d.model_dump(mode="json") for d in report.documents],
    }

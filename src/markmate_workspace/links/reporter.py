"""Link report formatting functions.

- ``format_move_result`` -- one-paragraph summary of a move propagation.
- ``format_page_link_report`` -- broken ``[[...]]`` links grouped by file.
- ``format_image_link_report`` -- broken image references grouped by file.
- ``format_unused_images`` -- assets nothing references.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import (
        ImageLinkValidationResult,
        MoveResult,
        PageLinkValidationResult,
        UnusedImage,
        ValidationReport,
    )

# ------------------------------------------------------------------
# Human-readable reports
# ------------------------------------------------------------------


def _failure_lines(report: ValidationReport) -> list[str]:
    if not report.failures:
        return []
    lines = ["", f"Could not scan {len(report.failures)} file(s):"]
    for failure in report.failures:
        lines.append(f"  {failure.file_path}: {failure.error}")
    return lines


def format_move_result(result: MoveResult) -> str:
    """Format a move propagation outcome.

    Args:
        result: Aggregate counts returned by the propagator.

    Returns:
        Multi-line formatted string.
    """
    kind = "folder" if result.is_folder else "file"
    lines = [
        f"Moved {kind} {result.old_path} -> {result.new_path}",
        f"Updated {result.links_updated} link(s) in {result.files_updated} file(s)",
    ]
    if result.files_failed:
        lines.append(f"Failed to update {result.files_failed} file(s):")
        for path in result.failed_paths:
            lines.append(f"  {path}")
    return "\n".join(lines)


def format_page_link_report(
    report: ValidationReport[PageLinkValidationResult],
) -> str:
    if not report.results:
        lines = [f"No broken page links in {report.files_scanned} file(s)."]
    else:
        total = sum(len(r.broken_links) for r in report.results)
        lines = [f"Found {total} broken page link(s) in {len(report.results)} file(s):"]
        for result in report.results:
            lines.append("")
            lines.append(f"{result.file_path}:")
            for link in result.broken_links:
                lines.append(
                    f"  line {link.line_number}: [[{link.link_text}]] -> {link.resolved_path}"
                )
    lines.extend(_failure_lines(report))
    return "\n".join(lines)


def format_image_link_report(
    report: ValidationReport[ImageLinkValidationResult],
) -> str:
    if not report.results:
        lines = [f"No broken image links in {report.files_scanned} file(s)."]
    else:
        total = sum(len(r.broken_images) for r in report.results)
        lines = [
            f"Found {total} broken image link(s) in {len(report.results)} file(s):"
        ]
        for result in report.results:
            lines.append("")
            lines.append(f"{result.file_path}:")
            for image in result.broken_images:
                lines.append(
                    f"  line {image.line_number} ({image.link_type.value}): "
                    f"{image.image_src} -> {image.resolved_path}"
                )
    lines.extend(_failure_lines(report))
    return "\n".join(lines)


def format_unused_images(report: ValidationReport[UnusedImage]) -> str:
    if not report.results:
        lines = ["No unused images."]
    else:
        lines = [f"Found {len(report.results)} unused image(s):"]
        for image in report.results:
            stamp = (
                image.last_modified.strftime("%Y-%m-%d %H:%M")
                if image.last_modified
                else "unknown"
            )
            lines.append(f"  {image.file_path} (modified {stamp})")
    lines.extend(_failure_lines(report))
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: ValidationReport | MoveResult) -> dict:
    """Convert a validation report or move result to a JSON-safe dict.

    Suitable for MCP ``structuredContent`` output.
    """
    return report.model_dump(mode="json")

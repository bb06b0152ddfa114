"""
Result reporting.

Surfaces a SubmissionResult to the caller: as structured log events and
as printable text or JSON. An aborted execution is always reported as a
failure.
"""

import json
from typing import List

import structlog

from oracle_runner.core.result import ExecutionStatus, SubmissionResult

logger = structlog.get_logger(__name__)


class ResultReporter:
    """Renders submission results without altering them."""

    def report(self, result: SubmissionResult) -> None:
        """Log a submission result at a level matching its status."""
        fields = {
            "digest": result.digest,
            "wait_level": result.wait_level.value,
            "gas_used": result.gas_used,
            "object_changes": len(result.object_changes) if result.object_changes is not None else None,
            "effects": len(result.effects) if result.effects is not None else None,
        }

        if result.status == ExecutionStatus.CONFIRMED:
            logger.info("submission_confirmed", **fields)
        elif result.status == ExecutionStatus.ABORTED:
            logger.error(
                "submission_aborted",
                error=result.error,
                failed_step=result.failed_step,
                **fields,
            )
        else:
            logger.warning("submission_pending", **fields)

    def render(self, result: SubmissionResult, json_format: bool = False) -> str:
        """
        Format a result for display.

        Args:
            result: Result to format
            json_format: Emit JSON instead of text

        Returns:
            Formatted result
        """
        if json_format:
            return json.dumps(result.to_dict(), indent=2)

        lines: List[str] = [
            f"Digest:     {result.digest}",
            f"Status:     {result.status.value.upper()}",
            f"Wait level: {result.wait_level.value}",
        ]
        if result.error:
            lines.append(f"Error:      {result.error}")
        if result.gas_used is not None:
            lines.append(f"Gas used:   {result.gas_used:,}")

        if result.effects is not None:
            lines.append("")
            lines.append(f"Effects ({len(result.effects)}):")
            for effect in result.effects:
                lines.append(f"  [{effect.index}] {effect.outcome.value:<8} {effect.target}")

        if result.object_changes is not None:
            lines.append("")
            lines.append(f"Object changes ({len(result.object_changes)}):")
            for change in result.object_changes:
                description = change.object_type or ""
                lines.append(f"  {change.change_type:<11} {change.object_id} {description}".rstrip())

        return "\n".join(lines)

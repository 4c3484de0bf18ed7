"""JSON report output."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from browserdiff.models.difference_report import DifferenceReport
from browserdiff.models.session import TestSession


def generate_json_report(
    session: TestSession,
    report: DifferenceReport,
    output_path: Path,
) -> None:
    """Write a machine-readable JSON report of the session and its comparisons."""
    data = {
        "session": session.to_json(),
        "report": report.to_json(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)

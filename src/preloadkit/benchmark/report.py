"""Markdown rendering of benchmark suites."""

from __future__ import annotations

from datetime import datetime

from preloadkit.benchmark.models import BenchmarkResult, BenchmarkSuiteResult
from preloadkit.benchmark.regression import RegressionDetector

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int | float) -> str:
    """Human readable byte count using 1024 steps ("1.5 KB")."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_UNITS[unit]}"


def _format_result(result: BenchmarkResult, detector: RegressionDetector | None) -> list[str]:
    lines = [f"### {result.name}", ""]

    if not result.success:
        lines.append("- **Status**: [FAIL]")
        lines.append(f"- **Error**: {result.error}")
        lines.append("")
        return lines

    lines.extend(
        [
            f"- **Iterations**: {result.iterations}",
            f"- **Average**: {result.average_time:.2f}ms",
            f"- **Min**: {result.min_time:.2f}ms",
            f"- **Max**: {result.max_time:.2f}ms",
            f"- **Std dev**: {result.std_dev:.2f}ms",
            f"- **Ops/sec**: {result.ops_per_second:.2f}",
            f"- **Peak memory**: {format_bytes(result.memory.peak)}",
        ]
    )

    findings = detector.detect(result) if detector is not None else []
    if findings:
        lines.append("- **Compared to baseline**:")
        for finding in findings:
            marker = "[WARN]" if finding.is_regression else "[PASS]"
            lines.append(
                f"  - {marker} {finding.metric.value}: "
                f"{finding.change_percent:+.2f}% ({finding.severity.value})"
            )

    lines.append("")
    return lines


def generate_report(suite: BenchmarkSuiteResult, detector: RegressionDetector | None = None) -> str:
    """Render a suite as Markdown.

    One section per test with its statistics. With a detector, significant
    changes against the baseline are listed and marked [WARN] for
    regressions, [PASS] for improvements. Failed tests show [FAIL] and
    their error.
    """
    finished = datetime.fromtimestamp(suite.timestamp).isoformat(sep=" ", timespec="seconds")
    lines = [
        "# Benchmark Report",
        "",
        f"**Suite**: {suite.name}",
        f"**Finished**: {finished}",
        f"**Total time**: {suite.total_time:.2f}ms",
        f"**Passed**: {suite.passed_tests}",
        f"**Failed**: {suite.failed_tests}",
        "",
        "## Results",
        "",
    ]
    for result in suite.results:
        lines.extend(_format_result(result, detector))
    return "\n".join(lines)

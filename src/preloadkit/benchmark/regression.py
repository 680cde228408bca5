"""Regression detection against stored baselines.

A metric is significant when its relative change exceeds the threshold.
Whether a significant change is a regression depends on the metric:
time and memory regress upward, throughput regresses downward.

Usage:
    detector = RegressionDetector(baselines)
    for finding in detector.detect(result, threshold=0.10):
        print(finding.metric, finding.change_percent, finding.severity)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from preloadkit.benchmark.models import BenchmarkResult, Metric, RegressionFinding, Severity

HIGH_SEVERITY = 0.5
MEDIUM_SEVERITY = 0.2

# metric -> (value accessor, higher is worse)
TRACKED_METRICS: dict[Metric, tuple[Callable[[BenchmarkResult], float], bool]] = {
    Metric.AVERAGE_TIME: (lambda r: r.average_time, True),
    Metric.PEAK_MEMORY: (lambda r: r.memory.peak, True),
    Metric.OPS_PER_SECOND: (lambda r: r.ops_per_second, False),
}


def classify_severity(fraction: float) -> Severity:
    """Severity tier for an absolute relative change (0.3 means 30%)."""
    if fraction > HIGH_SEVERITY:
        return Severity.HIGH
    if fraction > MEDIUM_SEVERITY:
        return Severity.MEDIUM
    return Severity.LOW


def compare_metric(
    metric: Metric,
    current: float,
    baseline: float,
    threshold: float,
    higher_is_worse: bool,
) -> RegressionFinding | None:
    """Compare one metric value with its baseline.

    Returns:
        A finding if the relative change exceeds threshold, otherwise None.
        A zero baseline has no relative change and never yields a finding.
    """
    if baseline == 0:
        return None

    change = current - baseline
    fraction = change / baseline
    if abs(fraction) <= threshold:
        return None

    return RegressionFinding(
        metric=metric,
        current=current,
        baseline=baseline,
        change=change,
        change_percent=fraction * 100,
        is_regression=fraction > 0 if higher_is_worse else fraction < 0,
        severity=classify_severity(abs(fraction)),
    )


class RegressionDetector:
    """Compares results to the baseline stored under the same name.

    Args:
        baselines: Name -> baseline result. Read live, never mutated.
        threshold: Default significance threshold as a fraction.
    """

    def __init__(self, baselines: Mapping[str, BenchmarkResult], threshold: float = 0.10) -> None:
        self._baselines = baselines
        self._threshold = threshold

    def baseline_for(self, name: str) -> BenchmarkResult | None:
        return self._baselines.get(name)

    def detect(
        self, current: BenchmarkResult, threshold: float | None = None
    ) -> list[RegressionFinding]:
        """Findings for every tracked metric that changed significantly.

        Returns an empty list when no baseline exists for current.name or
        when current is a failed run.
        """
        baseline = self._baselines.get(current.name)
        if baseline is None or not current.success:
            return []

        limit = self._threshold if threshold is None else threshold
        findings: list[RegressionFinding] = []
        for metric, (value_of, higher_is_worse) in TRACKED_METRICS.items():
            finding = compare_metric(
                metric, value_of(current), value_of(baseline), limit, higher_is_worse
            )
            if finding is not None:
                findings.append(finding)
        return findings

    def has_regression(self, current: BenchmarkResult, threshold: float | None = None) -> bool:
        """True if any finding for current is a regression."""
        return any(f.is_regression for f in self.detect(current, threshold))

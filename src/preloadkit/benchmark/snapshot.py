"""Validated snapshot format for exporting and restoring benchmark state.

Snapshots are plain JSON. Pydantic validates them on the way in so a
corrupt or hand-edited file fails loudly instead of poisoning baselines.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from preloadkit.benchmark.models import BenchmarkResult


class MemoryUsageModel(BaseModel):
    before: int = 0
    after: int = 0
    peak: int = 0


class BenchmarkResultModel(BaseModel):
    name: str
    iterations: int = Field(ge=0)
    total_time: float
    average_time: float
    min_time: float
    max_time: float
    std_dev: float
    ops_per_second: float
    memory: MemoryUsageModel = Field(default_factory=MemoryUsageModel)
    success: bool = True
    error: str | None = None

    def to_result(self) -> BenchmarkResult:
        return BenchmarkResult.from_dict(self.model_dump())


class BenchmarkSnapshot(BaseModel):
    """Baselines and per-name history."""

    baselines: dict[str, BenchmarkResultModel] = Field(default_factory=dict)
    history: dict[str, list[BenchmarkResultModel]] = Field(default_factory=dict)

    @classmethod
    def from_state(
        cls,
        baselines: dict[str, BenchmarkResult],
        history: dict[str, list[BenchmarkResult]],
    ) -> BenchmarkSnapshot:
        return cls.model_validate(
            {
                "baselines": {name: r.to_dict() for name, r in baselines.items()},
                "history": {name: [r.to_dict() for r in rs] for name, rs in history.items()},
            }
        )

    def baseline_results(self) -> dict[str, BenchmarkResult]:
        return {name: model.to_result() for name, model in self.baselines.items()}

    def history_results(self) -> dict[str, list[BenchmarkResult]]:
        return {name: [m.to_result() for m in models] for name, models in self.history.items()}

    def write(self, path: str | Path) -> None:
        Path(path).write_text(self.model_dump_json(indent=2), encoding="utf-8")

    @classmethod
    def read(cls, path: str | Path) -> BenchmarkSnapshot:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def parse(cls, data: dict[str, Any]) -> BenchmarkSnapshot:
        return cls.model_validate(data)

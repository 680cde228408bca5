"""Configuration settings using Pydantic Settings.

Provides typed configuration with environment variable support for the
preload scheduler and the benchmark engine.

Usage:
    from preloadkit.config import PreloadSettings, BenchmarkSettings

    # Load from environment variables (PRELOAD_*, BENCHMARK_*)
    preload_settings = PreloadSettings()
    benchmark_settings = BenchmarkSettings()

    # Or override with explicit values
    benchmark_settings = BenchmarkSettings(iterations=20, warmup_iterations=2)
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PreloadSettings(BaseSettings):  # type: ignore[misc]
    """Configuration for the load cache and preload scheduler.

    Attributes:
        max_concurrent: Max loaders in flight per batch call (None = unlimited).
        aggressive_priority: Smart-preload threshold on capable devices.
        conservative_priority: Smart-preload threshold on constrained devices.
        load_timeout: Seconds a caller waits on one load (None = forever).
        retry_attempts: Attempts per loader (1 = no retry, >1 requires tenacity).
        metrics_history: Samples retained per metric key.

    Environment Variables:
        PRELOAD_MAX_CONCURRENT
        PRELOAD_AGGRESSIVE_PRIORITY
        PRELOAD_CONSERVATIVE_PRIORITY
        PRELOAD_LOAD_TIMEOUT
        PRELOAD_RETRY_ATTEMPTS
        PRELOAD_METRICS_HISTORY
    """

    model_config = SettingsConfigDict(
        env_prefix="PRELOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_concurrent: int | None = Field(default=None, ge=1)
    aggressive_priority: int = 1
    conservative_priority: int = 5
    load_timeout: float | None = Field(default=None, gt=0)
    retry_attempts: int = Field(default=1, ge=1)
    metrics_history: int = Field(default=50, ge=1)


class BenchmarkSettings(BaseSettings):  # type: ignore[misc]
    """Defaults for benchmark runs and regression detection.

    Attributes:
        iterations: Measured iterations per benchmark.
        warmup_iterations: Untimed iterations run first.
        timeout_ms: Per-iteration limit; exceeding it fails the run.
        history_limit: Results retained per benchmark name.
        regression_threshold: Relative change (fraction) that counts as significant.

    Environment Variables:
        BENCHMARK_ITERATIONS
        BENCHMARK_WARMUP_ITERATIONS
        BENCHMARK_TIMEOUT_MS
        BENCHMARK_HISTORY_LIMIT
        BENCHMARK_REGRESSION_THRESHOLD
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHMARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    iterations: int = Field(default=100, ge=0)
    warmup_iterations: int = Field(default=10, ge=0)
    timeout_ms: float = Field(default=30000.0, gt=0)
    history_limit: int = Field(default=50, ge=1)
    regression_threshold: float = Field(default=0.10, ge=0)

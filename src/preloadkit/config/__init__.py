"""Configuration module using Pydantic Settings.

Provides typed configuration with environment variable support.

Usage:
    from preloadkit.config import PreloadSettings, BenchmarkSettings

    settings = PreloadSettings(max_concurrent=4)
    bench = BenchmarkSettings(iterations=50)
"""

from preloadkit.config.settings import BenchmarkSettings, PreloadSettings

__all__ = [
    "PreloadSettings",
    "BenchmarkSettings",
]

"""Configuration and presets for the chromatrace pipeline."""

from dataclasses import dataclass
from typing import Dict, Optional

EXECUTORS = ('process', 'thread')


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration for the potrace colour pipeline."""

    # Raster normalization
    max_dimension: int = 1000

    # Potrace
    turdsize: int = 2
    alphamax: float = 1.0
    opticurve: bool = True
    opttolerance: float = 0.2

    # Thresholding, None means automatic (Otsu / multi-Otsu)
    threshold: Optional[int] = None
    posterize_steps: int = 4

    # Palette recovery
    palette_size: int = 5

    # Optimization
    optimize: bool = True
    path_precision: int = 3

    # Concurrency
    max_workers: Optional[int] = None
    executor: str = 'process'
    file_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be positive, got {self.max_dimension}")
        if self.threshold is not None and not 0 <= self.threshold <= 255:
            raise ValueError(f"threshold must be within 0-255, got {self.threshold}")
        if not 2 <= self.posterize_steps <= 255:
            raise ValueError(f"posterize_steps must be within 2-255, got {self.posterize_steps}")
        if not 1 <= self.palette_size <= 256:
            raise ValueError(f"palette_size must be within 1-256, got {self.palette_size}")
        if self.executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {EXECUTORS}, got {self.executor!r}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.file_timeout is not None and self.file_timeout <= 0:
            raise ValueError(f"file_timeout must be positive, got {self.file_timeout}")

    @classmethod
    def from_preset(cls, name: str, **overrides) -> 'PipelineConfig':
        """
        Build a config from a named tracing preset.

        Args:
            name: Preset name ('balanced', 'detailed', 'smooth')
            **overrides: Fields that take precedence over the preset

        Returns:
            PipelineConfig
        """
        settings = dict(get_trace_preset(name))
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**settings)


# ============================================================================
# TRACING PRESETS
# ============================================================================

TRACE_PRESETS: Dict[str, Dict] = {
    # Balanced: potrace defaults, four gray levels
    'balanced': {
        'turdsize': 2,
        'alphamax': 1.0,
        'opticurve': True,
        'opttolerance': 0.2,
        'posterize_steps': 4,
        'path_precision': 3,
    },
    # Detailed: keep speckles, more levels, sharper corners
    'detailed': {
        'turdsize': 0,
        'alphamax': 0.8,
        'opticurve': True,
        'opttolerance': 0.1,
        'posterize_steps': 6,
        'path_precision': 3,
    },
    # Smooth: drop small specks, round corners, fewer levels
    'smooth': {
        'turdsize': 8,
        'alphamax': 1.3,
        'opticurve': True,
        'opttolerance': 0.4,
        'posterize_steps': 3,
        'path_precision': 2,
    },
}


def get_trace_preset(name: str) -> Dict:
    """
    Get tracing settings for a named preset.

    Args:
        name: Preset name ('balanced', 'detailed', 'smooth')

    Returns:
        Dictionary of tracing settings
    """
    return TRACE_PRESETS.get(name, TRACE_PRESETS['balanced'])

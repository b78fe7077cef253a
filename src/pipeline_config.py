"""Live pipeline configuration: policy enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import Settings, settings


class SummaryFailurePolicy(str, Enum):
    """What the scheduler does when a summarization call fails."""

    SKIP = "skip"
    RETRY_ONCE = "retry_once"


class StopPolicy(str, Enum):
    """What happens to buffered same-speaker text when recording stops."""

    FLUSH = "flush"
    DISCARD = "discard"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-session configuration for the live pipeline.

    Defaults mirror the project's current behaviour (20-line summary windows,
    three prior summaries as context, skip a failed window, flush on stop).
    """

    window_size: int = 20
    context_summaries: int = 3
    failure_policy: SummaryFailurePolicy = SummaryFailurePolicy.SKIP
    stop_policy: StopPolicy = StopPolicy.FLUSH
    keepalive_interval: float = 10.0

    def __post_init__(self) -> None:
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.context_summaries < 0:
            raise ValueError(
                f"context_summaries must not be negative, got {self.context_summaries}"
            )

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> PipelineConfig:
        source = source or settings
        return cls(
            window_size=source.summary_window_size,
            context_summaries=source.summary_context_size,
            failure_policy=SummaryFailurePolicy(source.summary_failure_policy),
            stop_policy=StopPolicy.FLUSH if source.flush_on_stop else StopPolicy.DISCARD,
            keepalive_interval=source.keepalive_interval_seconds,
        )

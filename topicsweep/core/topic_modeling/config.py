from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, Optional, Tuple


@dataclass(frozen=True)
class GibbsSamplerConfig:
    alpha: Optional[float] = None  # None = 50 / k
    eta: float = 0.1

    def alpha_for(self, num_topics: int) -> float:
        return self.alpha if self.alpha is not None else 50.0 / num_topics


@dataclass(frozen=True)
class TopicSelectionConfig:
    candidates: Tuple[int, ...] = tuple(range(2, 101))
    burn_in: int = 1000
    iterations: int = 2000
    sample_interval: int = 50
    random_seed: Optional[int] = None
    # pool / budget:
    max_workers: Optional[int] = None  # None = executor default
    time_budget_seconds: Optional[float] = None  # None = wait for every fit
    executor: Literal["process", "thread"] = "process"

    def __post_init__(self):
        for name in ("burn_in", "iterations", "sample_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.executor not in ("process", "thread"):
            raise ValueError(f"Unknown executor '{self.executor}'.")
        if self.time_budget_seconds is not None and self.time_budget_seconds <= 0:
            raise ValueError("time_budget_seconds must be positive.")

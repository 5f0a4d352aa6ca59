import random
from dataclasses import dataclass, field


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded exponential backoff: ``min(base_ms * 2**attempt, cap_ms)``.

    ``jitter`` (0..1) shaves up to that fraction off each delay at random.
    The default of 0 keeps delays deterministic.
    """

    base_ms: int = 1000
    cap_ms: int = 8000
    jitter: float = 0.0
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self):
        if self.base_ms <= 0 or self.cap_ms < self.base_ms:
            raise ValueError("backoff needs 0 < base_ms <= cap_ms")
        if not 0.0 <= self.jitter < 1.0:
            raise ValueError("jitter must be in [0, 1)")

    def delay(self, attempt: int) -> float:
        """Delay in milliseconds before retry number ``attempt`` (zero-indexed)."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        # cap the exponent so huge attempt counts don't build huge ints
        delay = min(self.base_ms * (2 ** min(attempt, 32)), self.cap_ms)
        if self.jitter:
            delay -= self.rng.uniform(0, self.jitter * delay)
        return delay

from __future__ import annotations

import random
import time
from typing import Callable, Optional


class BackoffPolicy:
    """一時的な 503 に対する再試行回数と待機時間を決めるポリシー。

    待機時間は ``[min_seconds, max_seconds]`` の一様乱数。sleep と乱数源は
    テストで差し替えられるよう注入できる。
    """

    def __init__(
        self,
        max_attempts: int = 3,
        min_seconds: float = 2.0,
        max_seconds: float = 5.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._min = max(0.0, min_seconds)
        self._max = max(self._min, max_seconds)
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def has_attempts_left(self, attempt: int) -> bool:
        """``attempt`` は 1 始まりの試行回数。"""
        return attempt < self._max_attempts

    def next_delay(self) -> float:
        return self._rng.uniform(self._min, self._max)

    def wait(self) -> float:
        delay = self.next_delay()
        if delay:
            self._sleep(delay)
        return delay

import random


class ExponentialBackoff:
    """
    Bounded exponential backoff.

    Delays start at ``initial`` and double (by ``factor``) on every call to
    :meth:`next_delay` until they reach ``maximum``. ``jitter`` adds a random
    fraction of the delay on top, e.g. ``jitter=0.1`` adds up to 10%.
    """

    def __init__(
        self,
        initial: float = 1.0,
        maximum: float = 60.0,
        factor: float = 2.0,
        jitter: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        if initial <= 0:
            raise ValueError("initial delay must be positive")
        if maximum < initial:
            raise ValueError("maximum delay must not be below the initial delay")
        if factor < 1:
            raise ValueError("factor must be at least 1")
        if jitter < 0:
            raise ValueError("jitter must not be negative")
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.jitter = jitter
        self._rng = rng or random.Random()
        self.attempts = 0

    def next_delay(self) -> float:
        delay = min(self.initial * self.factor**self.attempts, self.maximum)
        # Cap the exponent once the maximum is reached
        if delay < self.maximum:
            self.attempts += 1
        if self.jitter:
            delay += self._rng.uniform(0, delay * self.jitter)
        return delay

    def reset(self) -> None:
        self.attempts = 0

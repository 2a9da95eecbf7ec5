from threadline.core.modules.sync.retry import Clock, SystemClock


class CooldownGate:
    """Post-write window during which pushed snapshots must not replace local state.

    Modeled as a deadline recomputed on every successful save rather than a
    cancellable timer, so a superseded window can never fire late.
    """

    def __init__(self, window: float, clock: Clock | None = None) -> None:
        self.window = window  # seconds
        self._clock = clock or SystemClock()
        self._deadline: float | None = None

    def start(self) -> None:
        """Open (or extend) the window from now."""
        self._deadline = self._clock.now() + self.window

    @property
    def in_cooldown(self) -> bool:
        return self._deadline is not None and self._clock.now() < self._deadline

    @property
    def remaining(self) -> float:
        if self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - self._clock.now())

"""
Minimal aggregates used across the test suite.
"""

from typing import Any, List


class Mean:
    """Running arithmetic mean."""

    def __init__(self):
        self.n = 0
        self.mean = 0.0

    def update(self, value: float) -> None:
        self.n += 1
        self.mean += (value - self.mean) / self.n

    def read(self) -> float:
        return self.mean


class Collect:
    """Keeps every input in arrival order."""

    def __init__(self):
        self.items: List[Any] = []

    def update(self, value: Any) -> None:
        self.items.append(value)

    def read(self) -> List[Any]:
        return list(self.items)


class Last:
    """Reports the most recent input."""

    def __init__(self):
        self.last = None

    def update(self, value: Any) -> None:
        self.last = value

    def read(self) -> Any:
        return self.last


class Count:
    """Counts updates."""

    def __init__(self):
        self.n = 0

    def update(self, value: Any) -> None:
        self.n += 1

    def read(self) -> int:
        return self.n


class Sum:
    """Sums inputs; a list input is summed first."""

    def __init__(self):
        self.total = 0.0

    def update(self, value: Any) -> None:
        if isinstance(value, (list, tuple)):
            value = sum(value)
        self.total += value

    def read(self) -> float:
        return self.total


class History:
    """Keeps every input; read() returns the internal list itself."""

    def __init__(self):
        self.items: List[Any] = []

    def update(self, value: Any) -> None:
        self.items.append(value)

    def read(self) -> List[Any]:
        return self.items

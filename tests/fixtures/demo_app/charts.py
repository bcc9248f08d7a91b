"""Concrete implementations living apart from their interfaces (bound explicitly)."""

from dataclasses import dataclass, field

from demo_app.contracts import IChart


@dataclass
class Chart(IChart):
    series: list[float] = field(default_factory=list)

    def draw(self) -> str:
        return " ".join(f"{v:g}" for v in self.series)

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

LOW = "low"
NORMAL = "normal"
HIGH = "high"

ARROWS = {HIGH: "↑", LOW: "↓"}


@dataclass(frozen=True)
class LabClassification:
    status: str = NORMAL
    parsed_value: Optional[float] = None
    ref: Optional[Tuple[float, float]] = None

    @property
    def abnormal(self) -> bool:
        return self.status in (LOW, HIGH)


@dataclass(frozen=True)
class Abnormality:
    name: str
    short_name: str
    value_text: str
    direction: str  # LOW | HIGH

    @property
    def chip(self) -> str:
        return f"{self.short_name}: {self.value_text or '(?)'} {ARROWS[self.direction]}"


@dataclass
class AbnormalitySummary:
    findings: List[Abnormality] = field(default_factory=list)
    other: Optional[str] = None

    def chips(self) -> List[str]:
        out = [f.chip for f in self.findings]
        if self.other:
            out.append(f"Other: {self.other}")
        return out

    @property
    def high(self) -> List[Abnormality]:
        return [f for f in self.findings if f.direction == HIGH]

    @property
    def low(self) -> List[Abnormality]:
        return [f for f in self.findings if f.direction == LOW]

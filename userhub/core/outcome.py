"""
Result type for operations with best-effort side effects.
"""
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    """
    The value of a successful operation plus the codes of any side effects
    (such as a notification email) that failed without failing the operation.
    """
    value: T
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def warn(self, code: str) -> None:
        self.warnings.append(code)

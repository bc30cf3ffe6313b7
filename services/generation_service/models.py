"""
Generation service data models.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class GenerationResult:
    """Text produced for one request, with the path it took"""
    text: str
    model: str
    requested_model: str
    attempts: int = 1
    models_tried: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def switched_model(self) -> bool:
        return self.model != self.requested_model

"""
File persistence for model availability state.

Lets a restarted process remember which models were recently failing. Snapshots
older than ``max_age_seconds`` are ignored and removed.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Union

from infrastructure.resilience.availability_registry import ResourceStatus
from utils.logging_config import get_logger


class AvailabilityStateStore:
    """JSON file holding the per-model status map of an ``AvailabilityRegistry``"""

    def __init__(
        self,
        path: Union[str, Path],
        max_age_seconds: float = 30 * 60,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.logger = get_logger(__name__)
        self.path = Path(path)
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def save(self, statuses: Dict[str, ResourceStatus]):
        """
        Write the status map to disk

        Args:
            statuses: Mapping of model name to its status
        """
        data = {
            "saved_at": self._clock().isoformat(),
            "resources": {name: status.to_dict() for name, status in statuses.items()}
        }

        try:
            # Error codes are free-form; anything JSON cannot hold is stored as text
            payload = json.dumps(data, ensure_ascii=False, indent=2, default=str)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            self.logger.warning(f"Failed to save model availability state to {self.path}: {e}")

    def load(self) -> Dict[str, ResourceStatus]:
        """
        Read the status map back

        Returns:
            The saved statuses, or an empty mapping when the file is missing,
            unreadable or older than ``max_age_seconds``
        """
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            saved_at = datetime.fromisoformat(data["saved_at"])
            age = (self._clock() - saved_at).total_seconds()

            if age >= self.max_age_seconds:
                self.logger.info(f"Discarding model availability state saved {age:.0f}s ago")
                self.clear()
                return {}

            return {
                name: ResourceStatus.from_dict(raw)
                for name, raw in data["resources"].items()
            }

        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.warning(f"Failed to load model availability state from {self.path}: {e}")
            return {}

    def clear(self):
        """Remove the state file if present"""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

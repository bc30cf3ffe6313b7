"""
Per-model availability tracking with blacklisting and ranked fallback.

A model that fails ``blacklist_threshold`` times within the cooldown window is
blacklisted. The blacklist is lifted lazily: every read compares the time of
the last failure with ``cooldown_seconds`` instead of relying on a timer, so a
model is never released earlier than ``cooldown_seconds`` after its most recent
failure.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from utils.logging_config import get_logger, log_resource_event

ERROR_HISTORY_LIMIT = 20


@dataclass
class ResourceStatus:
    """Health of one model, created on its first reported failure"""
    failure_count: int = 0
    last_error_code: Optional[Any] = None
    last_failure_time: Optional[datetime] = None
    blacklisted: bool = False
    error_codes: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failure_count": self.failure_count,
            "last_error_code": self.last_error_code,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "blacklisted": self.blacklisted,
            "error_codes": list(self.error_codes)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResourceStatus':
        last_failure_time = data.get("last_failure_time")
        return cls(
            failure_count=int(data.get("failure_count", 0)),
            last_error_code=data.get("last_error_code"),
            last_failure_time=datetime.fromisoformat(last_failure_time) if last_failure_time else None,
            blacklisted=bool(data.get("blacklisted", False)),
            error_codes=list(data.get("error_codes", []))
        )


class AvailabilityRegistry:
    """
    Tracks failures per model and picks substitutes for blacklisted ones.

    States per model:
    - untracked: never failed, always available
    - tracked: failing, still available below the threshold
    - blacklisted: excluded from selection until the cooldown elapses or an
      emergency reset clears it

    Query methods never raise; ``find_alternative`` always returns a model name.
    """

    def __init__(
        self,
        fallback_order: Sequence[str] = (),
        preferences: Optional[Dict[str, Sequence[str]]] = None,
        blacklist_threshold: int = 3,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], datetime] = datetime.now,
        on_blacklist: Optional[Callable[[str, ResourceStatus], Any]] = None,
        state_store=None
    ):
        """
        Initialize the registry

        Args:
            fallback_order: Models in preference order, searched when the requested one is blacklisted
            preferences: Per-model substitutes searched before ``fallback_order``
            blacklist_threshold: Failures that blacklist a model
            cooldown_seconds: Time after the last failure before a model is released
            clock: Source of the current time
            on_blacklist: Called with (model, status copy) whenever a model gets blacklisted
            state_store: Optional ``AvailabilityStateStore`` to restore from and save to
        """
        self.logger = get_logger(__name__)
        self.fallback_order = tuple(fallback_order)
        self.preferences = {name: tuple(alts) for name, alts in (preferences or {}).items()}
        self.blacklist_threshold = blacklist_threshold
        self.cooldown_seconds = cooldown_seconds
        self.on_blacklist = on_blacklist
        self._clock = clock
        self._state_store = state_store
        self._statuses: Dict[str, ResourceStatus] = {}

        # Thread safety
        self._lock = threading.RLock()

        if state_store is not None:
            self._statuses.update(state_store.load())
            if self._statuses:
                self.logger.info(f"Restored availability state for {len(self._statuses)} models")

    @classmethod
    def from_config(cls, availability_config, **kwargs) -> 'AvailabilityRegistry':
        """Build a registry from a ``config.app_config.AvailabilityConfig``"""
        if availability_config.persist_state and "state_store" not in kwargs:
            from infrastructure.resilience.state_store import AvailabilityStateStore
            kwargs["state_store"] = AvailabilityStateStore(
                availability_config.state_file,
                max_age_seconds=availability_config.state_max_age_seconds,
                clock=kwargs.get("clock", datetime.now)
            )

        return cls(
            fallback_order=availability_config.fallback_order,
            preferences=availability_config.preferences,
            blacklist_threshold=availability_config.blacklist_threshold,
            cooldown_seconds=availability_config.cooldown_seconds,
            **kwargs
        )

    def _is_expired(self, status: ResourceStatus, now: datetime) -> bool:
        """Check if the cooldown has elapsed since the last failure"""
        if status.last_failure_time is None:
            # A blacklist without a failure time cannot be timed; release it
            return status.blacklisted
        return (now - status.last_failure_time).total_seconds() >= self.cooldown_seconds

    def _expire(self, name: str, status: ResourceStatus, now: datetime) -> bool:
        """Release a model whose cooldown has elapsed; returns True if anything changed"""
        if not self._is_expired(status, now) or (status.failure_count == 0 and not status.blacklisted):
            return False

        was_blacklisted = status.blacklisted
        status.blacklisted = False
        status.failure_count = 0

        if was_blacklisted:
            log_resource_event(self.logger, "recovered", name, cooldown_seconds=self.cooldown_seconds)
        return True

    def _save(self):
        if self._state_store is not None:
            self._state_store.save(self._statuses)

    def report_failure(self, name: str, error_code: Optional[Any] = None):
        """
        Record a failed call against a model

        Args:
            name: Model name
            error_code: Failure classifier (HTTP status or category)
        """
        with self._lock:
            now = self._clock()
            status = self._statuses.get(name)
            if status is None:
                status = self._statuses[name] = ResourceStatus()
            else:
                # Failures from a previous window no longer count
                self._expire(name, status, now)

            status.failure_count += 1
            status.last_error_code = error_code
            status.last_failure_time = now
            if error_code is not None:
                status.error_codes.append(error_code)
                del status.error_codes[:-ERROR_HISTORY_LIMIT]

            self.logger.debug(f"Model {name} failure #{status.failure_count} (code={error_code})")

            newly_blacklisted = (
                not status.blacklisted and status.failure_count >= self.blacklist_threshold
            )
            if newly_blacklisted:
                status.blacklisted = True
                log_resource_event(
                    self.logger, "blacklisted", name, level=logging.WARNING,
                    failures=status.failure_count, error_codes=list(status.error_codes)
                )

            self._save()
            snapshot = replace(status, error_codes=list(status.error_codes))

        if newly_blacklisted and self.on_blacklist is not None:
            self.on_blacklist(name, snapshot)

    def is_available(self, name: str) -> bool:
        """Check if a model may be selected (not blacklisted)"""
        with self._lock:
            status = self._statuses.get(name)
            if status is None:
                return True

            if self._expire(name, status, self._clock()):
                self._save()

            return not status.blacklisted

    def find_alternative(self, name: str) -> str:
        """
        Pick the model to use instead of ``name``

        Returns ``name`` itself when available, else the first available model
        among its preferences and then the fallback order. When none is
        available every blacklist is cleared and ``name`` is returned.
        """
        with self._lock:
            if self.is_available(name):
                return name

            candidates = list(self.preferences.get(name, ())) + list(self.fallback_order)
            for candidate in candidates:
                if candidate != name and self.is_available(candidate):
                    log_resource_event(self.logger, "substituted", name, alternative=candidate)
                    return candidate

            self.logger.warning(
                f"No available alternative models found. Defaulting to original model {name}"
            )
            self.emergency_reset()
            return name

    def emergency_reset(self) -> List[str]:
        """
        Clear every blacklist

        Returns:
            Names of the models that were blacklisted
        """
        with self._lock:
            released = []
            for name, status in self._statuses.items():
                if status.blacklisted:
                    status.blacklisted = False
                    status.failure_count = 0
                    released.append(name)

            if released:
                log_resource_event(
                    self.logger, "emergency_reset", ", ".join(released),
                    level=logging.WARNING, released=released
                )
                self._save()

            return released

    def get_status(self, name: str) -> Optional[ResourceStatus]:
        """Get a copy of a model's stored status, None if it never failed"""
        with self._lock:
            status = self._statuses.get(name)
            if status is None:
                return None
            return replace(status, error_codes=list(status.error_codes))

    def get_health_status(self) -> Dict[str, Dict[str, Any]]:
        """
        Snapshot of every tracked or ranked model for monitoring

        Reports the effective state at the current time without modifying anything.
        """
        with self._lock:
            now = self._clock()
            names = list(self.fallback_order) + [n for n in self._statuses if n not in self.fallback_order]

            health = {}
            for name in names:
                status = self._statuses.get(name)
                if status is None:
                    health[name] = {
                        "available": True,
                        "failure_count": 0,
                        "last_failure_timestamp": None,
                        "last_error_code": None
                    }
                    continue

                expired = self._is_expired(status, now)
                health[name] = {
                    "available": expired or not status.blacklisted,
                    "failure_count": 0 if expired else status.failure_count,
                    "last_failure_timestamp": (
                        status.last_failure_time.isoformat() if status.last_failure_time else None
                    ),
                    "last_error_code": status.last_error_code
                }

            return health


# Global registry instance
_availability_registry: Optional[AvailabilityRegistry] = None


def get_availability_registry() -> AvailabilityRegistry:
    """Get the global availability registry, built from the application configuration"""
    global _availability_registry
    if _availability_registry is None:
        from config.app_config import get_config
        _availability_registry = AvailabilityRegistry.from_config(get_config().availability)
    return _availability_registry

"""
Generation service - runs text generation through the resilience layer.

Asks the availability registry which model to use, retries the call with the
retry executor, reports every failure that reflects on the model, and moves the
request to a substitute model when the current one gives up.
"""

import time
from typing import Any, Dict, List, Optional

from config.app_config import AppConfig, get_config
from infrastructure.external.text_generation_client import TextGenerationClient, get_text_generation_client
from infrastructure.resilience.availability_registry import AvailabilityRegistry, get_availability_registry
from infrastructure.resilience.error_classification import (
    counts_against_resource,
    get_error_code,
    is_retriable_error
)
from infrastructure.resilience.retry_executor import (
    RetryExecutor,
    RetryExhaustedError,
    RetryObserver,
    RetryOutcome,
    RetryPolicy,
    RetryStatus,
    get_retry_executor
)
from services.generation_service.models import GenerationResult
from utils.logging_config import (
    ErrorTracker,
    get_error_tracker,
    get_logger,
    initialize_logging,
    log_execution_time,
    log_health_snapshot,
    log_resource_event
)


class GenerationService:
    """
    Resilient text generation across interchangeable models.
    """

    def __init__(
        self,
        client: Optional[TextGenerationClient] = None,
        registry: Optional[AvailabilityRegistry] = None,
        executor: Optional[RetryExecutor] = None,
        config: Optional[AppConfig] = None,
        error_tracker: Optional[ErrorTracker] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.client = client or get_text_generation_client()
        self.registry = registry or get_availability_registry()
        self.executor = executor or get_retry_executor()
        self.error_tracker = error_tracker or get_error_tracker()

    def _build_policy(self, on_retry: Optional[RetryObserver]) -> RetryPolicy:
        return RetryPolicy.from_config(
            self.config.retry,
            retry_predicate=is_retriable_error,
            on_retry=on_retry
        )

    @staticmethod
    def _follow_model(on_retry: Optional[RetryObserver], model: str):
        if isinstance(on_retry, RetryStatus):
            on_retry.model_name = model

    def _record_failure(self, model: str, error: Exception):
        if counts_against_resource(error):
            self.registry.report_failure(model, get_error_code(error))

    def _operation(self, prompt: str, system_prompt: str, model: str):
        def attempt_generation(attempt: int) -> str:
            try:
                return self.client.generate(prompt, system_prompt, model)
            except Exception as e:
                self._record_failure(model, e)
                raise
        return attempt_generation

    def _async_operation(self, prompt: str, system_prompt: str, model: str):
        async def attempt_generation(attempt: int) -> str:
            try:
                return await self.client.agenerate(prompt, system_prompt, model)
            except Exception as e:
                self._record_failure(model, e)
                raise
        return attempt_generation

    def _next_model(self, outcome: RetryOutcome, models_tried: List[str]) -> Optional[str]:
        """
        Choose the model for another round after ``outcome`` failed

        Returns:
            A model not tried yet, or None when the request should fail
        """
        current = models_tried[-1]

        if not counts_against_resource(outcome.error):
            # Another model would reject the same request
            return None

        if len(models_tried) > self.config.llm.max_model_switches:
            self.logger.warning(f"Model switch budget spent after trying {', '.join(models_tried)}")
            return None

        alternative = self.registry.find_alternative(current)
        if alternative in models_tried:
            return None

        log_resource_event(self.logger, "switched", current, alternative=alternative)
        return alternative

    def _give_up(self, outcome: RetryOutcome, models_tried: List[str], total_attempts: int):
        self.error_tracker.track_error(
            outcome.error,
            context=models_tried[-1],
            models_tried=list(models_tried),
            attempts=total_attempts
        )
        raise RetryExhaustedError(total_attempts, outcome.error) from outcome.error

    def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        model: Optional[str] = None,
        on_retry: Optional[RetryObserver] = None
    ) -> GenerationResult:
        """
        Generate text, retrying and switching models as needed

        Args:
            prompt: User prompt
            system_prompt: System instructions
            model: Preferred model, the configured default when omitted
            on_retry: Observer notified with (error, retry number, delay) before each wait;
                a ``RetryStatus`` is kept pointed at the model being tried

        Returns:
            GenerationResult describing the text and the model that produced it

        Raises:
            RetryExhaustedError: If no model produced text
        """
        requested = model or self.config.llm.default_model
        policy = self._build_policy(on_retry)
        models_tried: List[str] = []
        total_attempts = 0
        current = self.registry.find_alternative(requested)
        start = time.monotonic()

        with log_execution_time(self.logger, "text generation", requested_model=requested):
            while current is not None:
                models_tried.append(current)
                self._follow_model(on_retry, current)
                outcome = self.executor.execute(self._operation(prompt, system_prompt, current), policy)
                total_attempts += outcome.attempts

                if outcome.success:
                    return GenerationResult(
                        text=outcome.value,
                        model=current,
                        requested_model=requested,
                        attempts=total_attempts,
                        models_tried=models_tried,
                        duration_seconds=time.monotonic() - start
                    )

                current = self._next_model(outcome, models_tried)

            self._give_up(outcome, models_tried, total_attempts)

    async def agenerate(
        self,
        prompt: str,
        system_prompt: str = "",
        model: Optional[str] = None,
        on_retry: Optional[RetryObserver] = None
    ) -> GenerationResult:
        """Async counterpart of ``generate``; backoff waits yield to the event loop"""
        requested = model or self.config.llm.default_model
        policy = self._build_policy(on_retry)
        models_tried: List[str] = []
        total_attempts = 0
        current = self.registry.find_alternative(requested)
        start = time.monotonic()

        with log_execution_time(self.logger, "text generation", requested_model=requested):
            while current is not None:
                models_tried.append(current)
                self._follow_model(on_retry, current)
                outcome = await self.executor.execute_async(
                    self._async_operation(prompt, system_prompt, current), policy
                )
                total_attempts += outcome.attempts

                if outcome.success:
                    return GenerationResult(
                        text=outcome.value,
                        model=current,
                        requested_model=requested,
                        attempts=total_attempts,
                        models_tried=models_tried,
                        duration_seconds=time.monotonic() - start
                    )

                current = self._next_model(outcome, models_tried)

            self._give_up(outcome, models_tried, total_attempts)

    def log_health(self) -> Dict[str, Dict[str, Any]]:
        """Log the registry's health snapshot and return it"""
        snapshot = self.registry.get_health_status()
        log_health_snapshot(self.logger, snapshot)
        return snapshot


# Global service instance
_generation_service: Optional[GenerationService] = None


def get_generation_service() -> GenerationService:
    """Get the global generation service instance"""
    global _generation_service
    if _generation_service is None:
        initialize_logging()
        _generation_service = GenerationService()
    return _generation_service

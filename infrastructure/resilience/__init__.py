"""
Resilience infrastructure - retry execution, model availability tracking and failure classification.
"""

from .retry_executor import (
    RetryExecutor,
    RetryPolicy,
    RetryOutcome,
    RetryStatus,
    RetryExhaustedError,
    get_retry_executor,
    exponential_backoff_delay
)
from .availability_registry import (
    AvailabilityRegistry,
    ResourceStatus,
    get_availability_registry
)
from .state_store import AvailabilityStateStore
from .error_classification import (
    TextGenerationError,
    EmptyResponseError,
    RETRIABLE_ERRORS,
    NON_RETRIABLE_ERRORS,
    get_error_code,
    is_retriable_error,
    counts_against_resource
)

__all__ = [
    'RetryExecutor',
    'RetryPolicy',
    'RetryOutcome',
    'RetryStatus',
    'RetryExhaustedError',
    'get_retry_executor',
    'exponential_backoff_delay',
    'AvailabilityRegistry',
    'ResourceStatus',
    'get_availability_registry',
    'AvailabilityStateStore',
    'TextGenerationError',
    'EmptyResponseError',
    'RETRIABLE_ERRORS',
    'NON_RETRIABLE_ERRORS',
    'get_error_code',
    'is_retriable_error',
    'counts_against_resource'
]

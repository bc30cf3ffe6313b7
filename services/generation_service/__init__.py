"""
Generation service - resilient text generation across interchangeable models.
"""

from .generation_service import GenerationService, get_generation_service
from .models import GenerationResult

__all__ = [
    'GenerationService',
    'GenerationResult',
    'get_generation_service'
]

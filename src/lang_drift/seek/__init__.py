"""Translation staleness detection package."""

from .detector import DEFAULT_SKIP_FILES, StalenessDetector
from .models import FileTranslationState, OriginStatus, OriginUpdate

__all__ = [
    "DEFAULT_SKIP_FILES",
    "FileTranslationState",
    "OriginStatus",
    "OriginUpdate",
    "StalenessDetector",
]

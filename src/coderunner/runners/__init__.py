from .base import Runner
from .registry import RUNNERS, LanguageRegistry

__all__ = ["Runner", "RUNNERS", "LanguageRegistry"]

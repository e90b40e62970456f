from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Type

import structlog

from ..core.errors import UnsupportedLanguage
from ..core.models import Language
from .base import Runner
from .java_runner import JavaRunner
from .native_runner import CppRunner, CRunner
from .node_runner import NodeRunner
from .python_runner import PythonRunner
from .sql_runner import SqliteRunner

logger = structlog.get_logger(__name__)

RUNNERS: Dict[Language, Type[Runner]] = {
    Language.PYTHON: PythonRunner,
    Language.JAVASCRIPT: NodeRunner,
    Language.JAVA: JavaRunner,
    Language.CPP: CppRunner,
    Language.C: CRunner,
    Language.SQLITE: SqliteRunner,
}


class LanguageRegistry:
    """Read-only lookup from a language id (or alias) to its runner profile."""

    def __init__(self, images: Optional[Mapping[str, str]] = None,
                 runners: Optional[Mapping[Language, Type[Runner]]] = None):
        runners = dict(runners if runners is not None else RUNNERS)
        missing = [lang.value for lang in Language if lang not in runners]
        if missing:
            raise RuntimeError(f"no runner profile for: {', '.join(missing)}")

        images = {k.lower(): v for k, v in (images or {}).items()}
        self._profiles: Dict[Language, Runner] = {}
        self._lookup: Dict[str, Language] = {}
        for lang, cls in runners.items():
            if cls.language is not lang:
                raise RuntimeError(f"{cls.__name__} is registered for {lang.value}")
            self._profiles[lang] = cls(image=images.get(lang.value))
            for name in (lang.value, *cls.aliases):
                if name in self._lookup:
                    raise RuntimeError(f"language alias '{name}' registered twice")
                self._lookup[name] = lang

    def resolve(self, language_id: str) -> Runner:
        key = (language_id or "").strip().lower()
        lang = self._lookup.get(key)
        if lang is None:
            logger.info("unsupported_language", language=language_id)
            raise UnsupportedLanguage(language_id, self.languages())
        return self._profiles[lang]

    def languages(self) -> List[str]:
        return sorted(lang.value for lang in self._profiles)

    def profiles(self) -> List[Runner]:
        return [self._profiles[lang] for lang in Language]

from __future__ import annotations

import shlex

from ..core.models import Language
from .base import Runner


class _CompiledRunner(Runner):
    compiler: str
    default_image = "gcc:13"

    def command(self, entry: str):
        # compile-then-run, nothing more
        return ["sh", "-c", f"{self.compiler} {shlex.quote(entry)} -o a.out && ./a.out"]


class CppRunner(_CompiledRunner):
    language = Language.CPP
    compiler = "g++"
    extension = ".cpp"
    extra_extensions = (".cc", ".cxx")
    aliases = ("c++", "cxx")


class CRunner(_CompiledRunner):
    language = Language.C
    compiler = "gcc"
    extension = ".c"

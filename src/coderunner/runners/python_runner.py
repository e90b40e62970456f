from ..core.models import Language
from .base import Runner


class PythonRunner(Runner):
    language = Language.PYTHON
    default_image = "python:3.11-slim"
    extension = ".py"
    aliases = ("py", "python3")

    def command(self, entry: str):
        return ["python", "-u", entry]

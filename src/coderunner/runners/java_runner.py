from ..core.models import Language
from .base import Runner


class JavaRunner(Runner):
    """
    Always writes ``Main.java`` and runs it with the single-file source
    launcher, which executes the first top-level class in the file whatever
    it is called.
    """

    language = Language.JAVA
    default_image = "eclipse-temurin:17-jdk"
    extension = ".java"
    fixed_entry = "Main.java"

    def command(self, entry: str):
        return ["java", entry]

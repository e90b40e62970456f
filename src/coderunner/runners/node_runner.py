from ..core.models import Language
from .base import Runner


class NodeRunner(Runner):
    language = Language.JAVASCRIPT
    default_image = "node:18-alpine"
    extension = ".js"
    extra_extensions = (".mjs", ".cjs")
    aliases = ("js", "node", "nodejs")

    def command(self, entry: str):
        return ["node", entry]

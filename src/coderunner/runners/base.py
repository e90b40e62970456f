from __future__ import annotations

from typing import List, Optional, Tuple

from ..core.models import Language


class Runner:
    """
    Language profile: how to lay out and launch one language's source.

    Subclasses set the class attributes and implement ``command``. Instances
    are treated as read-only once built; only the image can be overridden
    at construction time.
    """

    language: Language
    default_image: str
    extension: str
    extra_extensions: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    # set when the language mandates one entry file name
    fixed_entry: Optional[str] = None
    init_file_name: Optional[str] = None
    init_file_content: Optional[str] = None

    def __init__(self, image: Optional[str] = None):
        self.image = image or self.default_image

    @property
    def id(self) -> str:
        return self.language.value

    def entry_file_name(self, requested_ext: Optional[str] = None) -> str:
        if self.fixed_entry:
            return self.fixed_entry
        ext = self.extension
        if requested_ext:
            wanted = requested_ext if requested_ext.startswith(".") else f".{requested_ext}"
            if wanted.lower() in (self.extension, *self.extra_extensions):
                ext = wanted.lower()
        return f"script{ext}"

    def command(self, entry: str) -> List[str]:
        raise NotImplementedError

    def build_argv(self, entry: str) -> List[str]:
        return list(self.command(entry))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(image={self.image!r})"

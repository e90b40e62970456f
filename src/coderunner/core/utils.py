from __future__ import annotations

import re
import uuid
from typing import Optional

# keep \t \n \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def new_job_id() -> str:
    return uuid.uuid4().hex


def sanitize_output(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    if isinstance(raw, str):
        text = raw
    else:
        text = raw.decode("utf-8", errors="replace")
    return _CONTROL_CHARS.sub("", text)

"""Write an exported transcript to disk."""

from __future__ import annotations

import os
from pathlib import Path
from uuid import uuid4

from assistant_core.domain.exceptions import BusinessError


def write_transcript(path: str | Path, text: str) -> Path:
    """Atomically write ``text`` to ``path`` and return the resolved path.

    The parent directory is created if needed; a half-written file is never
    left at ``path``.
    """

    target = Path(path).expanduser().resolve()
    tmp_path = target.parent / f".{target.name}.{uuid4().hex}.tmp"
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, target)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise BusinessError(code="TRANSCRIPT_WRITE_ERROR", message=str(e))
    return target

from __future__ import annotations

import time
from pathlib import Path

DRAFT = "draft"
FINAL = "final"
SAVE_DRAFT_LABEL = "Save Draft"


def version_for_submit(button: str | None) -> str:
    return DRAFT if button == SAVE_DRAFT_LABEL else FINAL


class LetterWriter:
    def __init__(self, root: str | Path, *, clock=time.time) -> None:
        self.root = Path(root)
        self._clock = clock

    def path_for(self, version: str) -> Path:
        if version not in (DRAFT, FINAL):
            raise ValueError(f"Unknown letter version {version!r}.")
        return self.root / version / f"mob_{int(self._clock())}.txt"

    def write(self, letter: str, version: str) -> Path:
        path = self.path_for(version)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(letter, encoding="utf-8")
        return path

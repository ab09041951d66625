from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union
import json

class ArchiveWriter:
    """Writes streamed archives (container exports, image saves) to disk."""

    def __init__(self, out_dir: Path = Path(".")) -> None:
        self.out_dir = out_dir

    def target(self, name: Union[str, Path]) -> Path:
        p = Path(name)
        return p if p.is_absolute() else self.out_dir / p

    def write_stream(self, name: Union[str, Path], chunks: Iterable[bytes]) -> int:
        # existing files are truncated, not appended to
        p = self.target(name)
        p.parent.mkdir(parents=True, exist_ok=True)
        total = 0
        with p.open("wb") as f:
            for chunk in chunks:
                f.write(chunk)
                total += len(chunk)
        return total

    @staticmethod
    def archive_name(reference: str) -> str:
        """``<reference>.tar`` with path and tag separators flattened."""
        safe = reference.replace("/", "_").replace(":", "_")
        return f"{safe}.tar"

    @staticmethod
    def json_dumps(obj: object) -> str:
        return json.dumps(obj, ensure_ascii=False, indent=2, default=str)

from dataclasses import dataclass
from typing import Literal

StreamName = Literal["stdout", "stderr"]


@dataclass(frozen=True)
class Chunk:
    stream: StreamName
    data: bytes

from __future__ import annotations

from typing import Optional, Protocol

from .model import Parent


class ParentDirectory(Protocol):
    def parent_by_id(self, parent_id: str) -> Optional[Parent]:
        raise NotImplementedError

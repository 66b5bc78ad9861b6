from typing import Protocol

from svelte_tsx.models import MappedPosition


class PositionMapper(Protocol):
    def to_generated_pos(self, original_pos: int) -> int: ...

    def to_original_pos(self, generated_pos: int) -> MappedPosition: ...

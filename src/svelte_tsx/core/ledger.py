"""Ordered record of text insertions and the position mapping it implies.

Each insertion is stored with its position in the original text, its position
in the generated text and the running total of inserted characters, so both
directions of the mapping are a single scan.
"""

from __future__ import annotations

from collections.abc import Iterator

from svelte_tsx.models import Insertion, MappedPosition


class LedgerError(ValueError):
    """Raised when an insertion would break the ledger ordering."""


class InsertionLedger:
    def __init__(self) -> None:
        self._records: list[Insertion] = []
        self._frozen = False

    def __iter__(self) -> Iterator[Insertion]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[Insertion, ...]:
        return tuple(self._records)

    @property
    def is_empty(self) -> bool:
        return not self._records

    @property
    def frozen(self) -> bool:
        return self._frozen

    def insert(self, position: int, text: str) -> None:
        """Record ``text`` as inserted before the original character at ``position``."""
        if self._frozen:
            raise LedgerError("Cannot insert into a ledger that has already been assembled")
        if position < 0:
            raise LedgerError(f"Insertion position must not be negative: {position}")
        if any(record.original_pos == position for record in self._records):
            raise LedgerError(f"An insertion at position {position} already exists")

        length = len(text)
        index = next(
            (i for i, record in enumerate(self._records) if record.original_pos > position),
            len(self._records),
        )
        for i in range(index, len(self._records)):
            record = self._records[i]
            self._records[i] = record.model_copy(
                update={
                    "generated_pos": record.generated_pos + length,
                    "total": record.total + length,
                }
            )

        prev_total = self._records[index - 1].total if index > 0 else 0
        self._records.insert(
            index,
            Insertion(
                original_pos=position,
                generated_pos=position + prev_total,
                length=length,
                inserted=text,
                total=prev_total + length,
            ),
        )

    def to_generated_pos(self, original_pos: int) -> int:
        total = 0
        for record in self._records:
            if original_pos < record.original_pos:
                break
            total += record.length
        return original_pos + total

    def to_original_pos(self, generated_pos: int) -> MappedPosition:
        """Map a generated offset back to the original text.

        Offsets strictly inside inserted text have no original counterpart;
        they are reported with ``in_generated=True`` and anchored at the start
        of the insertion.
        """
        total = 0
        previous: Insertion | None = None
        for record in self._records:
            if generated_pos <= record.generated_pos:
                break
            total += record.length
            previous = record

        if previous is not None and generated_pos < previous.generated_pos + previous.length:
            return MappedPosition(pos=previous.original_pos, in_generated=True)

        return MappedPosition(pos=generated_pos - total, in_generated=False)

    def assemble(self, original_text: str) -> str:
        """Replay the insertions over ``original_text`` and freeze the ledger."""
        parts: list[str] = []
        pos = 0
        for record in self._records:
            parts.append(original_text[pos : record.original_pos])
            parts.append(record.inserted)
            pos = record.original_pos
        parts.append(original_text[pos:])
        self._frozen = True
        return "".join(parts)

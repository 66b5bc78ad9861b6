"""Character-level editing of a source string.

The original text is kept as a linked list of chunks. Edits never change the
original offsets of a chunk, only its content, the text attached before
(``intro``) or after (``outro``) it, and its place in the list, so every edit
is addressed in original coordinates no matter what happened before.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from svelte_tsx.models import MappedPosition


class SpliceError(ValueError):
    """Raised when an edit addresses an invalid or already edited range."""


class _Chunk:
    __slots__ = ("start", "end", "original", "content", "intro", "outro", "edited", "previous", "next")

    def __init__(self, start: int, end: int, content: str) -> None:
        self.start = start
        self.end = end
        self.original = content
        self.content = content
        self.intro = ""
        self.outro = ""
        self.edited = False
        self.previous: _Chunk | None = None
        self.next: _Chunk | None = None

    def edit(self, content: str, content_only: bool = False) -> None:
        self.content = content
        if not content_only:
            self.intro = ""
            self.outro = ""
        self.edited = True

    def split(self, index: int) -> _Chunk:
        offset = index - self.start
        tail = _Chunk(index, self.end, self.original[offset:])
        tail.outro = self.outro
        self.outro = ""
        self.original = self.original[:offset]
        if self.edited:
            # only removed chunks get here; both halves stay removed
            tail.content = ""
            tail.edited = True
        else:
            self.content = self.original
        self.end = index

        tail.next = self.next
        if tail.next is not None:
            tail.next.previous = tail
        tail.previous = self
        self.next = tail
        return tail


@dataclass(frozen=True)
class Segment:
    generated_start: int
    generated_end: int
    original_start: int
    original_end: int | None

    @property
    def synthetic(self) -> bool:
        return self.original_end is None


class SegmentMap:
    """Position mapping derived from the final chunk layout.

    ``original_end`` is ``None`` for synthetic text; such a segment is
    anchored at ``original_start``.
    """

    def __init__(self, segments: list[Segment], original_length: int, generated_length: int) -> None:
        self.segments = tuple(segments)
        self.original_length = original_length
        self.generated_length = generated_length
        self._starts = [segment.generated_start for segment in self.segments]

    def to_generated_pos(self, original_pos: int) -> int:
        fallback: int | None = None
        for segment in self.segments:
            if segment.synthetic:
                continue
            assert segment.original_end is not None
            if segment.original_start <= original_pos < segment.original_end:
                return segment.generated_start + original_pos - segment.original_start
            if original_pos == segment.original_end:
                fallback = segment.generated_end
        if fallback is not None:
            return fallback
        # removed or overwritten text maps to wherever its replacement landed
        for segment in self.segments:
            if segment.synthetic and segment.original_start == original_pos:
                return segment.generated_start
        return min(original_pos, self.generated_length)

    def to_original_pos(self, generated_pos: int) -> MappedPosition:
        index = bisect_right(self._starts, generated_pos) - 1
        while index >= 0 and self.segments[index].generated_start == self.segments[index].generated_end:
            index -= 1
        if index < 0 or generated_pos >= self.segments[index].generated_end:
            if generated_pos >= self.generated_length:
                return MappedPosition(pos=self.original_length)
            return MappedPosition(pos=0)

        segment = self.segments[index]
        if segment.synthetic:
            return MappedPosition(
                pos=segment.original_start,
                in_generated=generated_pos > segment.generated_start,
            )
        return MappedPosition(pos=segment.original_start + generated_pos - segment.generated_start)


class Splicer:
    def __init__(self, original: str) -> None:
        self.original = original
        self.intro = ""
        self.outro = ""
        chunk = _Chunk(0, len(original), original)
        self._first: _Chunk = chunk
        self._last: _Chunk = chunk
        self._by_start: dict[int, _Chunk] = {0: chunk}
        self._by_end: dict[int, _Chunk] = {len(original): chunk}
        self._starts: list[int] = [0]

    def __str__(self) -> str:
        return self.to_string()

    def _check(self, index: int) -> None:
        if index < 0 or index > len(self.original):
            raise SpliceError(f"Index out of range: {index}")

    def _split(self, index: int) -> None:
        self._check(index)
        if index in self._by_start or index in self._by_end:
            return
        start = self._starts[bisect_right(self._starts, index) - 1]
        chunk = self._by_start[start]
        if chunk.edited and chunk.content:
            raise SpliceError(f"Cannot split a chunk that has already been edited ({chunk.start}-{chunk.end})")
        tail = chunk.split(index)
        if self._last is chunk:
            self._last = tail
        self._by_end[index] = chunk
        self._by_start[index] = tail
        self._by_end[tail.end] = tail
        self._starts.insert(bisect_right(self._starts, index), index)

    def prepend(self, content: str) -> Splicer:
        self.intro = content + self.intro
        return self

    def append(self, content: str) -> Splicer:
        self.outro += content
        return self

    def prepend_right(self, index: int, content: str) -> Splicer:
        """Insert ``content`` before the character at ``index``; it moves with that character."""
        self._split(index)
        chunk = self._by_start.get(index)
        if chunk is not None:
            chunk.intro = content + chunk.intro
        else:
            self.outro = content + self.outro
        return self

    def append_left(self, index: int, content: str) -> Splicer:
        """Insert ``content`` after the character before ``index``; it moves with that character."""
        self._split(index)
        chunk = self._by_end.get(index)
        if chunk is not None:
            chunk.outro += content
        else:
            self.intro += content
        return self

    def overwrite(self, start: int, end: int, content: str) -> Splicer:
        if start >= end:
            raise SpliceError(f"Cannot overwrite an empty range ({start}-{end})")
        self._split(start)
        self._split(end)
        first = self._by_start[start]
        last = self._by_end[end]
        chunk = first
        while chunk is not last:
            if chunk.next is not self._by_start.get(chunk.end):
                raise SpliceError("Cannot overwrite across a split point")
            assert chunk.next is not None
            chunk = chunk.next
            chunk.edit("")
        first.edit(content)
        return self

    def remove(self, start: int, end: int) -> Splicer:
        if start == end:
            return self
        self._split(start)
        self._split(end)
        chunk: _Chunk | None = self._by_start[start]
        while chunk is not None:
            chunk.edit("")
            chunk = self._by_start.get(chunk.end) if end > chunk.end else None
        return self

    def move(self, start: int, end: int, index: int) -> Splicer:
        """Move the original range ``start..end`` in front of the character at ``index``."""
        self._split(start)
        self._split(end)
        self._split(index)

        first = self._by_start[start]
        last = self._by_end[end]
        old_left = first.previous
        old_right = last.next

        new_right = self._by_start.get(index)
        if new_right is None and last is self._last:
            return self
        new_left = new_right.previous if new_right is not None else self._last

        if old_left is not None:
            old_left.next = old_right
        if old_right is not None:
            old_right.previous = old_left
        if new_left is not None:
            new_left.next = first
        if new_right is not None:
            new_right.previous = last

        if first.previous is None:
            assert last.next is not None
            self._first = last.next
        if last.next is None:
            assert first.previous is not None
            self._last = first.previous
            self._last.next = None

        first.previous = new_left
        last.next = new_right
        if new_left is None:
            self._first = first
        if new_right is None:
            self._last = last
        return self

    def _chunks(self) -> list[_Chunk]:
        chunks: list[_Chunk] = []
        chunk: _Chunk | None = self._first
        while chunk is not None:
            chunks.append(chunk)
            chunk = chunk.next
        return chunks

    def to_string(self) -> str:
        parts = [self.intro]
        for chunk in self._chunks():
            parts.extend((chunk.intro, chunk.content, chunk.outro))
        parts.append(self.outro)
        return "".join(parts)

    def generate_segments(self) -> SegmentMap:
        segments: list[Segment] = []
        pos = 0

        def synthetic(text: str, anchor: int) -> None:
            nonlocal pos
            if text:
                segments.append(Segment(pos, pos + len(text), anchor, None))
                pos += len(text)

        synthetic(self.intro, 0)
        for chunk in self._chunks():
            synthetic(chunk.intro, chunk.start)
            if chunk.edited:
                synthetic(chunk.content, chunk.start)
            elif chunk.content:
                segments.append(Segment(pos, pos + len(chunk.content), chunk.start, chunk.end))
                pos += len(chunk.content)
            synthetic(chunk.outro, chunk.end)
        synthetic(self.outro, len(self.original))
        return SegmentMap(segments, len(self.original), pos)

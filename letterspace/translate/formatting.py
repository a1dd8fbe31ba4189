"""
Rich text runs and approximate formatting transfer.

A translation does not preserve character positions, so formatting is
carried over heuristically:

1. The attributes at the start of the original cover the whole translation
2. Lines are paired by index; each translated line receives the
   attributes found at the middle of the corresponding original line
3. Every specially formatted run of the original (large or bold/italic
   text, non-default colours, underline, strikethrough) is applied to the
   proportionally equivalent range of the translation

There is no guarantee the result lines up with the translated words; it
only keeps headings and emphasis roughly where they were.

Attribute keys:
    font_size (float), bold (bool), italic (bool), font (str),
    foreground_color / background_color ((r, g, b) floats in 0..1),
    underline (bool), strikethrough (bool)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

Attributes = dict[str, Any]

HEADING_FONT_SIZE = 16
COLOR_TOLERANCE = 0.1

DEFAULT_TEXT_COLORS = ((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
DEFAULT_BACKGROUND_COLORS = ((1.0, 1.0, 1.0), (0.1, 0.1, 0.1))


@dataclass
class StyleRun:
    start: int
    end: int
    attributes: Attributes

    def to_list(self) -> list:
        return [self.start, self.end, self.attributes]

    @classmethod
    def from_list(cls, data: list) -> StyleRun:
        start, end, attributes = data
        return cls(int(start), int(end), dict(attributes))


@dataclass
class StyledText:
    """Plain text plus attribute runs.

    Runs may overlap; where they do, later runs override earlier ones for
    the keys they set.
    """
    text: str
    runs: list[StyleRun] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.text)

    @classmethod
    def plain(cls, text: str, attributes: Optional[Attributes] = None) -> StyledText:
        styled = cls(text)
        if attributes:
            styled.add_attributes(0, len(text), attributes)
        return styled

    def add_attributes(self, start: int, end: int, attributes: Attributes) -> None:
        start = max(0, start)
        end = min(len(self.text), end)
        if end > start and attributes:
            self.runs.append(StyleRun(start, end, dict(attributes)))

    def attributes_at(self, position: int) -> Attributes:
        merged: Attributes = {}
        for run in self.runs:
            if run.start <= position < run.end:
                merged.update(run.attributes)
        return merged

    def effective_ranges(self) -> Iterator[tuple[int, int, Attributes]]:
        """Yield maximal (start, end, attributes) ranges of constant attributes."""
        if not self.text:
            return
        bounds = {0, len(self.text)}
        for run in self.runs:
            bounds.update((run.start, run.end))
        points = sorted(b for b in bounds if 0 <= b <= len(self.text))

        current_start, current_attrs = None, None
        for start, _ in zip(points, points[1:]):
            attrs = self.attributes_at(start)
            if current_attrs is None:
                current_start, current_attrs = start, attrs
            elif attrs != current_attrs:
                yield current_start, start, current_attrs
                current_start, current_attrs = start, attrs
        yield current_start, len(self.text), current_attrs

    def to_runs(self) -> list[list]:
        return [run.to_list() for run in self.runs]

    @classmethod
    def from_runs(cls, text: str, runs: list[list]) -> StyledText:
        return cls(text, [StyleRun.from_list(r) for r in runs])

    @classmethod
    def join(cls, parts: list[StyledText], separator: str = "\n\n") -> StyledText:
        """Concatenate styled texts, shifting their runs."""
        combined = cls("")
        offset = 0
        texts = []
        for index, part in enumerate(parts):
            if index:
                texts.append(separator)
                offset += len(separator)
            texts.append(part.text)
            combined.runs.extend(
                StyleRun(r.start + offset, r.end + offset, dict(r.attributes)) for r in part.runs
            )
            offset += len(part.text)
        combined.text = "".join(texts)
        return combined


def _color_similar(a: Any, b: tuple[float, float, float], tolerance: float = COLOR_TOLERANCE) -> bool:
    try:
        return len(a) >= 3 and all(abs(float(x) - y) < tolerance for x, y in zip(a, b))
    except (TypeError, ValueError):
        return False


def is_probably_formatted(attributes: Attributes) -> bool:
    """Whether a run carries formatting worth carrying into a translation."""
    font_size = attributes.get("font_size")
    if font_size is not None and font_size > HEADING_FONT_SIZE:
        return True
    if attributes.get("bold") or attributes.get("italic"):
        return True

    color = attributes.get("foreground_color")
    if color is not None and not any(_color_similar(color, c) for c in DEFAULT_TEXT_COLORS):
        return True
    background = attributes.get("background_color")
    if background is not None and not any(_color_similar(background, c) for c in DEFAULT_BACKGROUND_COLORS):
        return True

    return bool(attributes.get("underline") or attributes.get("strikethrough"))


def apply_formatting(original: StyledText, translated_text: str) -> StyledText:
    """Carry formatting from ``original`` onto ``translated_text``."""
    translated = StyledText(translated_text)
    if not original.text or not translated_text:
        return translated

    translated.add_attributes(0, len(translated_text), original.attributes_at(0))

    original_lines = original.text.split("\n")
    translated_lines = translated_text.split("\n")
    original_offset = 0
    translated_offset = 0
    for original_line, translated_line in zip(original_lines, translated_lines):
        if original_line:
            sample = min(len(original_line) // 2, len(original_line) - 1)
            if original_offset + sample < len(original.text):
                translated.add_attributes(
                    translated_offset,
                    translated_offset + len(translated_line),
                    original.attributes_at(original_offset + sample),
                )
        original_offset += len(original_line) + 1
        translated_offset += len(translated_line) + 1

    _apply_special_formatting(original, translated)
    return translated


def _apply_special_formatting(original: StyledText, translated: StyledText) -> None:
    original_length = len(original.text)
    translated_length = len(translated.text)
    special = [(s, e, a) for s, e, a in original.effective_ranges() if is_probably_formatted(a)]
    for start, end, attributes in special:
        mapped_start = int(start / original_length * translated_length)
        mapped_end = int(end / original_length * translated_length)
        safe_start = max(0, min(mapped_start, translated_length - 1))
        safe_end = max(safe_start, min(mapped_end, translated_length))
        if safe_end > safe_start:
            translated.add_attributes(safe_start, safe_end, attributes)

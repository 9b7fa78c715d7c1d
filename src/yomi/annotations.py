from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

__all__ = [
    "FURIGANA",
    "Annotation",
    "Segment",
    "is_furigana",
    "furigana_annotations",
    "other_annotations",
    "render_furigana",
    "furigana_segments",
    "annotation_segments",
    "sanitize_vocabulary_content",
    "serialize_annotations",
    "serialize_segments",
    "deserialize_annotations",
]

FURIGANA = "furigana"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Annotation:
    """
    A span over the original text.

    ``loc`` and ``length`` are measured in code points of the original text.
    Only ``furigana`` annotations carry a reading the renderer substitutes;
    every other ``type`` is kept as-is for highlighting.
    """

    type: str
    loc: int
    length: int
    content: str
    id: int | str | None = None


@dataclass(frozen=True)
class Segment:
    text: str
    furigana: str | None = None
    annotation: Annotation | None = None

    def display_text(self) -> str:
        return self.furigana if self.furigana is not None else self.text


def is_furigana(annotation: Annotation) -> bool:
    return annotation.type.lower() == FURIGANA


def furigana_annotations(annotations: Iterable[Annotation]) -> list[Annotation]:
    return sorted((ann for ann in annotations if is_furigana(ann)), key=lambda ann: ann.loc)


def other_annotations(annotations: Iterable[Annotation]) -> list[Annotation]:
    return [ann for ann in annotations if not is_furigana(ann)]


def _accepted_spans(
    text: str, ordered: Iterable[Annotation]
) -> Iterator[tuple[int, int, int, Annotation]]:
    """
    Yield ``(gap_start, loc, end, annotation)`` for every span that survives.

    A span is dropped when it starts before the cursor (it overlaps an
    earlier-starting span) or at/after the end of the text. Spans reading
    past the end are clamped.
    """
    text_len = len(text)
    current = 0
    for ann in ordered:
        loc = ann.loc
        if loc < current or loc >= text_len:
            continue
        length = max(0, ann.length)
        if loc + length > text_len:
            length = text_len - loc
        yield current, loc, loc + length, ann
        current = loc + length


def render_furigana(text: str, annotations: Iterable[Annotation]) -> str:
    """Replace every furigana span with its reading and return the flat text."""
    pieces: list[str] = []
    spans = list(_accepted_spans(text, furigana_annotations(annotations)))
    for gap_start, loc, _end, ann in spans:
        if loc > gap_start:
            pieces.append(text[gap_start:loc])
        pieces.append(ann.content)
    current = spans[-1][2] if spans else 0
    if current < len(text):
        pieces.append(text[current:])
    return "".join(pieces)


def _build_segments(text: str, ordered: list[Annotation]) -> list[Segment]:
    segments: list[Segment] = []
    spans = list(_accepted_spans(text, ordered))
    for gap_start, loc, end, ann in spans:
        if loc > gap_start:
            segments.append(Segment(text=text[gap_start:loc]))
        segments.append(
            Segment(
                text=text[loc:end],
                furigana=ann.content if is_furigana(ann) else None,
                annotation=ann,
            )
        )
    current = spans[-1][2] if spans else 0
    if current < len(text):
        segments.append(Segment(text=text[current:]))
    return segments


def furigana_segments(text: str, annotations: Iterable[Annotation]) -> list[Segment]:
    """Split ``text`` into plain and furigana-bearing segments for display."""
    return _build_segments(text, furigana_annotations(annotations))


def annotation_segments(text: str, annotations: Iterable[Annotation]) -> list[Segment]:
    """Like :func:`furigana_segments` but over every annotation type."""
    ordered = sorted(annotations, key=lambda ann: ann.loc)
    return _build_segments(text, ordered)


def sanitize_vocabulary_content(text: str) -> str:
    # Textbook entries mark omitted words with ～ and ―.
    text = text.replace("～", "").replace("―", "")
    return _WHITESPACE_RE.sub(" ", text).strip()


def _coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
    return None


def serialize_annotations(annotations: Iterable[Annotation]) -> list[dict[str, object]]:
    payload: list[dict[str, object]] = []
    for ann in annotations:
        entry: dict[str, object] = {
            "type": ann.type,
            "loc": ann.loc,
            "len": ann.length,
            "content": ann.content,
        }
        if ann.id is not None:
            entry["id"] = ann.id
        payload.append(entry)
    return payload


def serialize_segments(segments: Iterable[Segment]) -> list[dict[str, object]]:
    payload: list[dict[str, object]] = []
    for segment in segments:
        entry: dict[str, object] = {"text": segment.text}
        if segment.furigana is not None:
            entry["furigana"] = segment.furigana
        if segment.annotation is not None:
            entry["annotation"] = serialize_annotations([segment.annotation])[0]
        payload.append(entry)
    return payload


def deserialize_annotations(data: Iterable[object]) -> list[Annotation]:
    annotations: list[Annotation] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            continue
        type_val = entry.get("type")
        content = entry.get("content")
        if not isinstance(type_val, str) or not type_val or not isinstance(content, str):
            continue
        loc = _coerce_int(entry.get("loc"))
        length = _coerce_int(entry.get("len", entry.get("length")))
        if loc is None or length is None:
            continue
        id_val = entry.get("id")
        if isinstance(id_val, bool) or not isinstance(id_val, (int, str)):
            id_val = None
        annotations.append(
            Annotation(
                type=type_val,
                loc=loc,
                length=length,
                content=content,
                id=id_val,
            )
        )
    return annotations

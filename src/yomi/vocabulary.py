from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .annotations import (
    Annotation,
    deserialize_annotations,
    render_furigana,
    serialize_annotations,
)
from .pitch import build_phoneme_tag, build_speech_markup, parse_accent

__all__ = [
    "VocabularyItem",
    "VocabularyLoadError",
    "serialize_vocabulary",
    "deserialize_vocabulary",
    "load_vocabulary",
]


class VocabularyLoadError(ValueError):
    """Raised when a vocabulary dataset cannot be read."""


@dataclass
class VocabularyItem:
    """
    One textbook vocabulary entry.

    ``reading`` is optional; when absent the reading is derived from the
    furigana annotations over ``content``.
    """

    content: str
    reading: str | None = None
    annotations: list[Annotation] = field(default_factory=list)
    accent: int | list[int] | None = None
    pos: str | None = None
    id: int | str | None = None

    def reading_text(self) -> str:
        if self.reading:
            return self.reading
        return render_furigana(self.content, self.annotations)

    def phoneme_tag(self) -> str:
        return build_phoneme_tag(self.content, self.reading_text(), self.accent)

    def speech_markup(self) -> str:
        return build_speech_markup(
            self.content,
            self.annotations,
            self.accent,
            reading=self.reading or None,
        )


def serialize_vocabulary(items: Iterable[VocabularyItem]) -> list[dict[str, object]]:
    payload: list[dict[str, object]] = []
    for item in items:
        entry: dict[str, object] = {
            "content": item.content,
            "reading": item.reading,
            "annotations": serialize_annotations(item.annotations),
            "accent": item.accent,
            "pos": item.pos,
        }
        if item.id is not None:
            entry["id"] = item.id
        payload.append(entry)
    return payload


def deserialize_vocabulary(data: Iterable[object]) -> list[VocabularyItem]:
    items: list[VocabularyItem] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            continue
        content = entry.get("content")
        # Annotation offsets index into the stored content, unsanitized.
        if not isinstance(content, str) or not content.strip():
            continue
        reading = entry.get("reading")
        if not isinstance(reading, str) or not reading.strip():
            reading = None
        annotations_val = entry.get("annotations")
        annotations = (
            deserialize_annotations(annotations_val) if isinstance(annotations_val, list) else []
        )
        pos = entry.get("pos")
        if not isinstance(pos, str):
            pos = None
        id_val = entry.get("id")
        if isinstance(id_val, bool) or not isinstance(id_val, (int, str)):
            id_val = None
        items.append(
            VocabularyItem(
                content=content,
                reading=reading,
                annotations=annotations,
                accent=parse_accent(entry.get("accent")),
                pos=pos,
                id=id_val,
            )
        )
    return items


def load_vocabulary(path: Path) -> list[VocabularyItem]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise VocabularyLoadError(f"Failed to read vocabulary file: {path}") from exc
    if isinstance(raw, dict):
        raw = raw.get("vocabulary")
    if not isinstance(raw, list):
        raise VocabularyLoadError(
            f"{Path(path).name} must contain a list or a 'vocabulary' array."
        )
    return deserialize_vocabulary(raw)

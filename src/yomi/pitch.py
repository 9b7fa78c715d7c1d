from __future__ import annotations

from typing import Iterable, Sequence

from .annotations import Annotation, render_furigana

__all__ = [
    "SMALL_KANA",
    "Accent",
    "to_morae",
    "mora_count",
    "select_primary_accent",
    "parse_accent",
    "encode_accent",
    "build_phoneme_tag",
    "build_speech_markup",
]

# Small kana that fuse with the preceding character. The sokuon (っ/ッ) is
# deliberately absent: it always stands as its own mora.
SMALL_KANA = frozenset("ゃゅょぁぃぅぇぉャュョァィゥェォ")

FLAT_MARK = "^"
DOWNSTEP_MARK = "!"
PHONEME_TEMPLATE = '<phoneme alphabet="yomigana" ph="{ph}">{text}</phoneme>'

Accent = int | Sequence[int] | None


def to_morae(reading: str) -> list[str]:
    chars = list(reading)
    morae: list[str] = []
    idx = 0
    while idx < len(chars):
        char = chars[idx]
        next_char = chars[idx + 1] if idx + 1 < len(chars) else None
        if next_char is not None and next_char in SMALL_KANA:
            morae.append(char + next_char)
            idx += 2
        else:
            morae.append(char)
            idx += 1
    return morae


def mora_count(reading: str) -> int:
    return len(to_morae(reading))


def select_primary_accent(accent: Accent) -> int | None:
    """
    Return the accent used for rendering.

    Words with several accepted patterns only have their first candidate
    rendered.
    """
    if accent is None:
        return None
    if isinstance(accent, int):
        return accent
    for value in accent:
        return value
    return None


def _parse_int_text(text: str) -> int | None:
    text = text.strip()
    digits = text[1:] if text.startswith("-") else text
    if not digits.isdigit():
        return None
    return int(text)


def parse_accent(value: object) -> int | list[int] | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        parts = [_parse_int_text(part) for part in value.split(",") if part.strip()]
        if not parts or any(part is None for part in parts):
            return None
        if len(parts) == 1:
            return parts[0]
        return parts
    if isinstance(value, (list, tuple)):
        candidates: list[int] = []
        for item in value:
            if isinstance(item, bool):
                continue
            if isinstance(item, int):
                candidates.append(item)
            elif isinstance(item, str):
                parsed = _parse_int_text(item)
                if parsed is not None:
                    candidates.append(parsed)
        return candidates or None
    return None


def encode_accent(reading: str, accent_position: int) -> str:
    """
    Mark the pitch contour of ``reading``.

    ``^`` opens the contour and ``!`` follows the accented mora. Heiban
    (``0``) and positions that do not fit the word are rendered flat.
    """
    if accent_position == 0:
        return f"{FLAT_MARK}{reading}"
    morae = to_morae(reading)
    if accent_position < 0 or accent_position >= len(morae):
        return f"{FLAT_MARK}{reading}"
    before = "".join(morae[:accent_position])
    after = "".join(morae[accent_position:])
    return f"{FLAT_MARK}{before}{DOWNSTEP_MARK}{after}"


def build_phoneme_tag(text: str, reading: str, accent: Accent) -> str:
    primary = select_primary_accent(accent)
    if primary is None:
        return PHONEME_TEMPLATE.format(ph=reading, text=text)
    return PHONEME_TEMPLATE.format(ph=encode_accent(reading, primary), text=text)


def build_speech_markup(
    content: str,
    annotations: Iterable[Annotation] | None = None,
    accent: Accent = None,
    *,
    reading: str | None = None,
) -> str:
    """
    Build the ``<speak>`` document sent to the speech synthesizer.

    Without accent data the plain content is spoken as-is.
    """
    if select_primary_accent(accent) is None:
        return f"<speak>{content}</speak>"
    if reading is None:
        reading = render_furigana(content, annotations or [])
    return f"<speak>{build_phoneme_tag(content, reading, accent)}</speak>"

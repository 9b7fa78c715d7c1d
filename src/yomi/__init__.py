from .annotations import (
    FURIGANA,
    Annotation,
    Segment,
    annotation_segments,
    deserialize_annotations,
    furigana_segments,
    render_furigana,
    serialize_annotations,
)
from .pitch import (
    build_phoneme_tag,
    build_speech_markup,
    encode_accent,
    select_primary_accent,
    to_morae,
)
from .vocabulary import VocabularyItem, VocabularyLoadError, load_vocabulary

__all__ = [
    "FURIGANA",
    "Annotation",
    "Segment",
    "render_furigana",
    "furigana_segments",
    "annotation_segments",
    "serialize_annotations",
    "deserialize_annotations",
    "to_morae",
    "select_primary_accent",
    "encode_accent",
    "build_phoneme_tag",
    "build_speech_markup",
    "VocabularyItem",
    "VocabularyLoadError",
    "load_vocabulary",
]

from __future__ import annotations

import pytest

from yomi.annotations import (
    Annotation,
    Segment,
    annotation_segments,
    deserialize_annotations,
    furigana_annotations,
    furigana_segments,
    other_annotations,
    render_furigana,
    sanitize_vocabulary_content,
    serialize_annotations,
    serialize_segments,
)


def _furigana(loc: int, length: int, content: str, ann_id: int | None = None) -> Annotation:
    return Annotation(type="furigana", loc=loc, length=length, content=content, id=ann_id)


def test_render_without_annotations_returns_text() -> None:
    assert render_furigana("こんにちは", []) == "こんにちは"
    assert render_furigana("", []) == ""


def test_render_ignores_annotations_out_of_bounds() -> None:
    assert render_furigana("こんにちは", [_furigana(100, 1, "こん")]) == "こんにちは"
    # Starting exactly at the end of the text is also out of bounds.
    assert render_furigana("先生", [_furigana(2, 1, "x")]) == "先生"


def test_render_sorts_unsorted_annotations() -> None:
    annotations = [
        _furigana(1, 1, "だち"),
        _furigana(0, 1, "とも"),
        _furigana(3, 1, "あ"),
    ]
    assert render_furigana("友達に会います", annotations) == "ともだちにあいます"


def test_render_does_not_mutate_caller_list() -> None:
    annotations = [_furigana(1, 1, "だち"), _furigana(0, 1, "とも")]
    snapshot = list(annotations)
    render_furigana("友達", annotations)
    assert annotations == snapshot


def test_render_clamps_length_past_end() -> None:
    assert render_furigana("彼女", [_furigana(0, 5, "かのじょ")]) == "かのじょ"
    assert render_furigana("この彼女", [_furigana(2, 9, "かのじょ")]) == "このかのじょ"


def test_render_drops_overlapping_annotation() -> None:
    annotations = [_furigana(0, 2, "ともだち"), _furigana(1, 1, "だち")]
    assert render_furigana("友達", annotations) == "ともだち"


def test_render_overlap_resolution_ignores_input_order() -> None:
    annotations = [_furigana(1, 1, "だち"), _furigana(0, 2, "ともだち")]
    assert render_furigana("友達", annotations) == "ともだち"


def test_render_ignores_non_furigana_types() -> None:
    emoji = Annotation(type="emoji", loc=0, length=2, content="せんせい")
    assert render_furigana("先生", [emoji]) == "先生"


def test_render_furigana_type_is_case_insensitive() -> None:
    ann = Annotation(type="Furigana", loc=0, length=2, content="せんせい")
    assert render_furigana("先生", [ann]) == "せんせい"


def test_render_keeps_prefix_before_annotation() -> None:
    assert render_furigana("何時", [_furigana(1, 1, "いつ")]) == "何いつ"


def test_render_skips_negative_locations() -> None:
    assert render_furigana("先生", [_furigana(-1, 2, "せんせい")]) == "先生"


def test_render_treats_negative_length_as_empty_span() -> None:
    assert render_furigana("先生", [_furigana(0, -3, "せん")]) == "せん先生"


def test_render_reproduces_gaps_and_contents_in_order() -> None:
    text = "この世界はとても綺麗ですから、ちゃんと守るよ。"
    annotations = [
        _furigana(2, 2, "せかい"),
        _furigana(8, 2, "きれい"),
        _furigana(19, 1, "まも"),
    ]
    rendered = render_furigana(text, annotations)
    assert rendered == "このせかいはとてもきれいですから、ちゃんとまもるよ。"
    gap_lengths = 2 + 4 + 9 + 3
    assert len(rendered) == gap_lengths + len("せかい") + len("きれい") + len("まも")


def test_render_is_identity_on_its_own_output() -> None:
    rendered = render_furigana("友達に会います", [_furigana(0, 2, "ともだち"), _furigana(3, 1, "あ")])
    assert render_furigana(rendered, []) == rendered


def test_furigana_annotation_filters() -> None:
    vocab = Annotation(type="vocabulary", loc=0, length=2, content="学校", id=7)
    late = _furigana(2, 1, "の")
    early = _furigana(0, 2, "がっこう")
    assert furigana_annotations([vocab, late, early]) == [early, late]
    assert other_annotations([vocab, late, early]) == [vocab]


@pytest.mark.parametrize(
    ("text", "annotations", "expected"),
    [
        ("ひらがな", [], [Segment(text="ひらがな")]),
        ("", [], []),
        (
            "の学校で",
            [_furigana(1, 2, "がっこう", 1)],
            [
                Segment(text="の"),
                Segment(text="学校", furigana="がっこう", annotation=_furigana(1, 2, "がっこう", 1)),
                Segment(text="で"),
            ],
        ),
        (
            "日本先生",
            [_furigana(2, 2, "せんせい", 2), _furigana(0, 2, "にほん", 1)],
            [
                Segment(text="日本", furigana="にほん", annotation=_furigana(0, 2, "にほん", 1)),
                Segment(text="先生", furigana="せんせい", annotation=_furigana(2, 2, "せんせい", 2)),
            ],
        ),
        (
            "学生です",
            [_furigana(0, 1, "がく"), _furigana(1, 1, "せい")],
            [
                Segment(text="学", furigana="がく", annotation=_furigana(0, 1, "がく")),
                Segment(text="生", furigana="せい", annotation=_furigana(1, 1, "せい")),
                Segment(text="です"),
            ],
        ),
    ],
)
def test_furigana_segments(text: str, annotations: list[Annotation], expected: list[Segment]) -> None:
    assert furigana_segments(text, annotations) == expected


def test_furigana_segments_share_render_policy() -> None:
    text = "友達に会います"
    annotations = [
        _furigana(0, 2, "ともだち"),
        _furigana(1, 1, "だち"),
        _furigana(3, 9, "あいます"),
        Annotation(type="grammar", loc=2, length=1, content="particle"),
    ]
    segments = furigana_segments(text, annotations)
    assert "".join(seg.text for seg in segments) == text
    assert "".join(seg.display_text() for seg in segments) == render_furigana(text, annotations)
    assert [seg.furigana for seg in segments] == ["ともだち", None, "あいます"]


def test_annotation_segments_cover_every_type() -> None:
    vocab = Annotation(type="vocabulary", loc=3, length=2, content="いる", id=12)
    furigana = _furigana(0, 2, "がっこう")
    segments = annotation_segments("学校にいる", [vocab, furigana])
    assert segments == [
        Segment(text="学校", furigana="がっこう", annotation=furigana),
        Segment(text="に"),
        Segment(text="いる", furigana=None, annotation=vocab),
    ]


def test_sanitize_vocabulary_content() -> None:
    assert sanitize_vocabulary_content("～から 来ました") == "から 来ました"
    assert sanitize_vocabulary_content("  ―さん\t\n です ") == "さん です"


def test_deserialize_annotations_drops_malformed_entries() -> None:
    payload = [
        {"type": "furigana", "loc": 0, "len": 2, "content": "がっこう", "id": 1},
        {"type": "furigana", "loc": "3", "len": "1", "content": "い"},
        {"type": "furigana", "loc": 0, "content": "x"},
        {"type": "furigana", "loc": True, "len": 1, "content": "x"},
        {"loc": 0, "len": 1, "content": "x"},
        "not-a-mapping",
        {"type": "vocabulary", "loc": 0, "length": 2, "content": "学校", "id": {"bad": 1}},
    ]
    annotations = deserialize_annotations(payload)
    assert annotations == [
        Annotation(type="furigana", loc=0, length=2, content="がっこう", id=1),
        Annotation(type="furigana", loc=3, length=1, content="い"),
        Annotation(type="vocabulary", loc=0, length=2, content="学校"),
    ]


def test_serialize_annotations_uses_len_key() -> None:
    payload = serialize_annotations([_furigana(0, 2, "がっこう", 5), _furigana(2, 1, "の")])
    assert payload == [
        {"type": "furigana", "loc": 0, "len": 2, "content": "がっこう", "id": 5},
        {"type": "furigana", "loc": 2, "len": 1, "content": "の"},
    ]


def test_serialize_segments() -> None:
    payload = serialize_segments(furigana_segments("この人", [_furigana(2, 1, "ひと")]))
    assert payload == [
        {"text": "この"},
        {
            "text": "人",
            "furigana": "ひと",
            "annotation": {"type": "furigana", "loc": 2, "len": 1, "content": "ひと"},
        },
    ]

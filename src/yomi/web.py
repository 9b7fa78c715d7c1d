from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from .annotations import (
    Annotation,
    annotation_segments,
    deserialize_annotations,
    furigana_segments,
    render_furigana,
    serialize_segments,
)
from .logging_utils import debug_log
from .pitch import build_phoneme_tag, build_speech_markup, parse_accent, to_morae
from .vocabulary import VocabularyItem, load_vocabulary


@dataclass
class WebConfig:
    vocabulary_path: Path | None = None
    title: str = "yomi"
    debug: bool = False


def _require_text(payload: dict[str, object], key: str = "text") -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{key} must be a string.")
    return value


def _payload_annotations(payload: dict[str, object]) -> list[Annotation]:
    value = payload.get("annotations")
    if value is None:
        return []
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail="annotations must be an array.")
    return deserialize_annotations(value)


def create_app(config: WebConfig, *, version: str = "0.0.0+unknown") -> FastAPI:
    vocabulary: list[VocabularyItem] | None = None
    if config.vocabulary_path is not None:
        vocabulary_path = config.vocabulary_path.expanduser().resolve()
        if not vocabulary_path.exists():
            raise FileNotFoundError(f"Vocabulary file not found: {vocabulary_path}")
        vocabulary = load_vocabulary(vocabulary_path)
        debug_log(f"loaded {len(vocabulary)} vocabulary item(s) from {vocabulary_path}")

    app = FastAPI(title=config.title, debug=config.debug)
    app.state.config = config
    app.state.vocabulary = vocabulary

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": version})

    @app.post("/api/furigana")
    def api_furigana(payload: dict[str, object] = Body(...)) -> JSONResponse:
        text = _require_text(payload)
        annotations = _payload_annotations(payload)
        reading = render_furigana(text, annotations)
        debug_log(f"furigana {text!r} ({len(annotations)} annotation(s)) -> {reading!r}")
        return JSONResponse({"reading": reading})

    @app.post("/api/segments")
    def api_segments(payload: dict[str, object] = Body(...)) -> JSONResponse:
        text = _require_text(payload)
        annotations = _payload_annotations(payload)
        if payload.get("all"):
            segments = annotation_segments(text, annotations)
        else:
            segments = furigana_segments(text, annotations)
        return JSONResponse({"segments": serialize_segments(segments)})

    @app.get("/api/morae")
    def api_morae(reading: str = Query(...)) -> JSONResponse:
        morae = to_morae(reading)
        return JSONResponse({"morae": morae, "count": len(morae)})

    @app.post("/api/phoneme")
    def api_phoneme(payload: dict[str, object] = Body(...)) -> JSONResponse:
        text = _require_text(payload)
        reading = _require_text(payload, "reading")
        raw_accent = payload.get("accent")
        accent = parse_accent(raw_accent)
        # An empty or all-invalid list means "no accent", like null.
        if accent is None and not (raw_accent is None or isinstance(raw_accent, list)):
            raise HTTPException(
                status_code=400,
                detail="accent must be an integer, an array of integers, or null.",
            )
        return JSONResponse(
            {
                "phoneme": build_phoneme_tag(text, reading, accent),
                "ssml": build_speech_markup(text, accent=accent, reading=reading),
            }
        )

    @app.get("/api/vocabulary")
    def api_vocabulary() -> JSONResponse:
        items = app.state.vocabulary
        if items is None:
            raise HTTPException(status_code=404, detail="No vocabulary dataset configured.")
        payload = []
        for item in items:
            entry: dict[str, object] = {
                "content": item.content,
                "reading": item.reading_text(),
                "accent": item.accent,
                "phoneme": item.phoneme_tag(),
            }
            if item.pos:
                entry["pos"] = item.pos
            if item.id is not None:
                entry["id"] = item.id
            payload.append(entry)
        return JSONResponse({"vocabulary": payload})

    return app

# facetstudio/storage.py
# Analysis history (facial_geometry + aesthetic_vectors) and saved looks in PocketBase.

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from facetstudio.auth import get_current_user
from facetstudio.backend import PocketBase, any_of, build_filter
from facetstudio.errors import StorageError, with_retry
from facetstudio.models import (
    AnalysisRecord,
    AnalysisResult,
    ColorPalette,
    EyeColor,
    FaceShape,
    SavedLook,
    SkinType,
    Undertone,
)

log = logging.getLogger(__name__)

GEOMETRY = "facial_geometry"
AESTHETICS = "aesthetic_vectors"
LOOKS = "saved_looks"

OCCASIONS = ["everyday", "work", "date", "party", "glam", "natural"]
TITLE_MAX = 50
DESCRIPTION_MAX = 200


# -----------------------------
# BACKEND ENUM MAPPING
# -----------------------------
_UNDERTONES = ("cool", "warm", "neutral", "olive")
_CANVAS_TYPES = ("dry", "oily", "combination", "sensitive", "mature")


def _first_contained(value: str, options) -> Optional[str]:
    normalized = str(value or "").lower()
    for opt in options:
        if opt in normalized:
            return opt
    return None


def undertone_to_backend(undertone) -> Optional[str]:
    return _first_contained(getattr(undertone, "value", undertone), _UNDERTONES)


def skin_type_to_backend(skin_type) -> Optional[str]:
    return _first_contained(getattr(skin_type, "value", skin_type), _CANVAS_TYPES)


def undertone_from_backend(value: Optional[str]) -> Undertone:
    return Undertone.parse(value)


def skin_type_from_backend(value: Optional[str]) -> SkinType:
    return SkinType.parse(value)


def _timestamp_ms(created: str) -> float:
    if not created:
        return 0.0
    # PocketBase: "2024-05-01 10:20:30.123Z"
    text = created.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text.replace(" ", "T")).timestamp() * 1000
    except ValueError:
        return 0.0


def _require_user(pb: PocketBase, action: str):
    user = get_current_user(pb)
    if user is None:
        raise StorageError(f"User must be authenticated to {action}")
    return user


def _geometry_payload(result: AnalysisResult) -> Dict[str, Any]:
    return {
        "mesh_data": result.mesh_data or {},
        "proportions": {
            "faceShape": result.face_shape.value,
            "eyeColor": result.eye_color.value,
            "structuralAnalysis": result.structural_analysis,
        },
        "symmetry_score": result.symmetry_score,
    }


def _aesthetic_payload(result: AnalysisResult, skin_tone_hex: Optional[str]) -> Dict[str, Any]:
    lips = result.color_palette.lips
    data = {
        "undertone": undertone_to_backend(result.undertone),
        "canvas_type": skin_type_to_backend(result.skin_type),
        "skin_tone_hex": skin_tone_hex or (lips[0] if lips else None),
    }
    return {k: v for k, v in data.items() if v is not None}


# -----------------------------
# ANALYSES
# -----------------------------
def save_analysis(
    pb: PocketBase,
    image_src: str,
    result: AnalysisResult,
    skin_tone_hex: Optional[str] = None,
) -> AnalysisRecord:
    user = _require_user(pb, "save analysis")

    try:
        geometry = with_retry(lambda: pb.collection(GEOMETRY).create(
            {"user": user.id, "is_active": True, **_geometry_payload(result)}
        ))
        aesthetic = with_retry(lambda: pb.collection(AESTHETICS).create(
            {"geometry_ref": geometry["id"], **_aesthetic_payload(result, skin_tone_hex)}
        ))
    except Exception as e:
        log.error("Failed to save analysis to PocketBase: %s", e)
        raise StorageError("Failed to save analysis. Please try again.") from e

    return AnalysisRecord(
        id=geometry["id"],
        timestamp=_timestamp_ms(geometry.get("created", "")),
        image_src=image_src,
        result=result,
        geometry_id=geometry["id"],
        aesthetic_id=aesthetic.get("id"),
    )


def update_record(pb: PocketBase, record: AnalysisRecord, skin_tone_hex: Optional[str] = None):
    _require_user(pb, "update records")

    try:
        if record.geometry_id:
            with_retry(lambda: pb.collection(GEOMETRY).update(
                record.geometry_id, _geometry_payload(record.result)
            ))
        if record.aesthetic_id:
            with_retry(lambda: pb.collection(AESTHETICS).update(
                record.aesthetic_id, _aesthetic_payload(record.result, skin_tone_hex)
            ))
    except Exception as e:
        log.error("Failed to update record in PocketBase: %s", e)
        raise StorageError("Failed to update record. Please try again.") from e


def _record_from_rows(geometry: Dict[str, Any], aesthetic: Optional[Dict[str, Any]]) -> AnalysisRecord:
    aesthetic = aesthetic or {}
    proportions = geometry.get("proportions") or {}
    tone = aesthetic.get("skin_tone_hex")
    score = geometry.get("symmetry_score")

    result = AnalysisResult(
        face_shape=FaceShape.parse(proportions.get("faceShape")),
        undertone=undertone_from_backend(aesthetic.get("undertone")),
        skin_type=skin_type_from_backend(aesthetic.get("canvas_type")),
        eye_color=EyeColor.parse(proportions.get("eyeColor")),
        structural_analysis=proportions.get("structuralAnalysis") or "",
        color_palette=ColorPalette(lips=[tone] if tone else []),
        mesh_data=geometry.get("mesh_data") or None,
        symmetry_score=float(score) if isinstance(score, (int, float)) else None,
    )
    return AnalysisRecord(
        id=geometry["id"],
        timestamp=_timestamp_ms(geometry.get("created", "")),
        image_src="",
        result=result,
        geometry_id=geometry["id"],
        aesthetic_id=aesthetic.get("id"),
    )


def get_history(pb: PocketBase) -> List[AnalysisRecord]:
    user = get_current_user(pb)
    if user is None:
        return []

    try:
        geometries = with_retry(lambda: pb.collection(GEOMETRY).get_full_list(
            filter=build_filter("user = {:uid}", uid=user.id), sort="-created",
        ))
        by_geometry: Dict[str, Dict[str, Any]] = {}
        ids = [g.get("id") for g in geometries if g.get("id")]
        if ids:
            aesthetics = with_retry(lambda: pb.collection(AESTHETICS).get_full_list(
                filter=any_of("geometry_ref", ids),
            ))
            for a in aesthetics:
                if a.get("geometry_ref"):
                    by_geometry[a["geometry_ref"]] = a
    except Exception as e:
        log.error("Failed to fetch history from PocketBase: %s", e)
        return []

    return [_record_from_rows(g, by_geometry.get(g["id"])) for g in geometries if g.get("id")]


def delete_record(pb: PocketBase, record_id: str) -> List[AnalysisRecord]:
    _require_user(pb, "delete records")
    try:
        with_retry(lambda: pb.collection(GEOMETRY).delete(record_id))
    except Exception as e:
        log.error("Failed to delete record from PocketBase: %s", e)
        raise StorageError("Failed to delete record. Please try again.") from e
    return get_history(pb)


# -----------------------------
# SAVED LOOKS (style board)
# -----------------------------
def validate_look(title: str, description: str = "", occasion: str = "everyday") -> List[str]:
    problems = []
    if not (title or "").strip():
        problems.append("Please add a title for this look")
    elif len(title.strip()) > TITLE_MAX:
        problems.append(f"Title must be at most {TITLE_MAX} characters")
    if description and len(description.strip()) > DESCRIPTION_MAX:
        problems.append(f"Notes must be at most {DESCRIPTION_MAX} characters")
    if occasion not in OCCASIONS:
        problems.append(f"Unknown occasion: {occasion}")
    return problems


def list_looks(pb: PocketBase) -> List[SavedLook]:
    user = get_current_user(pb)
    if user is None:
        return []
    try:
        rows = with_retry(lambda: pb.collection(LOOKS).get_full_list(
            filter=build_filter("user = {:uid}", uid=user.id), sort="-created",
        ))
    except Exception as e:
        # collection may not exist yet; show the empty board
        log.error("Failed to load looks: %s", e)
        return []
    return [SavedLook.from_record(r) for r in rows]


def create_look(
    pb: PocketBase,
    title: str,
    image_src: Optional[str] = None,
    description: str = "",
    occasion: str = "everyday",
    products_used: str = "",
    is_favorite: bool = False,
) -> SavedLook:
    problems = validate_look(title, description, occasion)
    if problems:
        raise StorageError(problems[0])
    user = _require_user(pb, "save looks")

    payload = {
        "user": user.id,
        "title": title.strip(),
        "description": (description or "").strip() or None,
        "image_src": image_src,
        "occasion": occasion,
        "products_used": (products_used or "").strip() or None,
        "is_favorite": bool(is_favorite),
    }
    try:
        row = with_retry(lambda: pb.collection(LOOKS).create(payload))
    except Exception as e:
        log.error("Failed to save look: %s", e)
        raise StorageError("Failed to save look. Try again?") from e
    return SavedLook.from_record(row)


def toggle_favorite(pb: PocketBase, look: SavedLook) -> SavedLook:
    try:
        with_retry(lambda: pb.collection(LOOKS).update(look.id, {"is_favorite": not look.is_favorite}))
    except Exception as e:
        log.error("Failed to update favorite: %s", e)
        raise StorageError("Failed to update favorite") from e
    look.is_favorite = not look.is_favorite
    return look


def delete_look(pb: PocketBase, look_id: str):
    try:
        with_retry(lambda: pb.collection(LOOKS).delete(look_id))
    except Exception as e:
        log.error("Failed to delete look: %s", e)
        raise StorageError("Failed to delete look") from e

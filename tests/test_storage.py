import pytest

from facetstudio import storage
from facetstudio.color_harmony import derive_color_harmony
from facetstudio.errors import StorageError
from facetstudio.models import AnalysisRecord, AnalysisResult, EyeColor, FaceShape, SavedLook, SkinType, Undertone


@pytest.fixture
def result():
    return AnalysisResult(
        face_shape=FaceShape.HEART,
        undertone=Undertone.COOL,
        skin_type=SkinType.COMBINATION,
        eye_color=EyeColor.GREEN,
        structural_analysis="Balanced proportions.",
        color_palette=derive_color_harmony(Undertone.COOL, EyeColor.GREEN, SkinType.COMBINATION),
        symmetry_score=91.0,
    )


def test_backend_enum_mapping():
    assert storage.undertone_to_backend(Undertone.OLIVE) == "olive"
    assert storage.undertone_to_backend(Undertone.UNKNOWN) is None
    assert storage.skin_type_to_backend(SkinType.COMBINATION) == "combination"
    assert storage.skin_type_to_backend(SkinType.BALANCED) is None
    assert storage.undertone_from_backend("warm") is Undertone.WARM
    assert storage.skin_type_from_backend(None) is SkinType.UNKNOWN


def test_save_analysis_creates_geometry_then_aesthetics(pb, session, result):
    session.add("POST", "/facial_geometry/records", {"id": "g1", "created": "2024-05-01 10:20:30.123Z"})
    session.add("POST", "/aesthetic_vectors/records", {"id": "a1"})

    record = storage.save_analysis(pb, "data:image/jpeg;base64,AA==", result)

    geometry = session.calls_to("POST", "/facial_geometry/records")[0].json
    assert geometry["user"] == "u1"
    assert geometry["is_active"] is True
    assert geometry["proportions"] == {"faceShape": "Heart", "eyeColor": "Green", "structuralAnalysis": "Balanced proportions."}
    assert geometry["symmetry_score"] == 91.0

    aesthetic = session.calls_to("POST", "/aesthetic_vectors/records")[0].json
    assert aesthetic == {
        "geometry_ref": "g1",
        "undertone": "cool",
        "canvas_type": "combination",
        "skin_tone_hex": result.color_palette.lips[0],
    }

    assert record.id == record.geometry_id == "g1"
    assert record.aesthetic_id == "a1"
    assert record.timestamp == pytest.approx(1714558830123.0)


def test_measured_skin_tone_wins(pb, session, result):
    session.add("POST", "/facial_geometry/records", {"id": "g1"})
    session.add("POST", "/aesthetic_vectors/records", {"id": "a1"})
    storage.save_analysis(pb, "", result, skin_tone_hex="#c89078")
    assert session.calls_to("POST", "/aesthetic_vectors/records")[0].json["skin_tone_hex"] == "#c89078"


def test_save_requires_login(anon_pb, result):
    with pytest.raises(StorageError, match="authenticated"):
        storage.save_analysis(anon_pb, "", result)


def test_save_failure_is_wrapped(pb, session, result):
    session.add("POST", "/facial_geometry/records", (400, {"message": "bad"}))
    with pytest.raises(StorageError, match="Failed to save analysis"):
        storage.save_analysis(pb, "", result)


def test_history_joins_aesthetics_in_one_query(pb, session):
    session.add("GET", "/facial_geometry/records", {
        "page": 1, "totalPages": 1,
        "items": [
            {"id": "g2", "created": "2024-05-02 08:00:00.000Z", "proportions": {"faceShape": "Oval", "eyeColor": "Blue"}, "symmetry_score": 88},
            {"id": "g1", "created": "2024-05-01 08:00:00.000Z", "proportions": {}},
        ],
    })
    session.add("GET", "/aesthetic_vectors/records", {
        "page": 1, "totalPages": 1,
        "items": [{"id": "a2", "geometry_ref": "g2", "undertone": "warm", "canvas_type": "dry", "skin_tone_hex": "#aabbcc"}],
    })

    history = storage.get_history(pb)

    geo_call, aes_call = session.calls
    assert geo_call.params["filter"] == 'user = "u1"'
    assert geo_call.params["sort"] == "-created"
    assert aes_call.params["filter"] == 'geometry_ref = "g2" || geometry_ref = "g1"'

    first, second = history
    assert first.result.face_shape is FaceShape.OVAL
    assert first.result.eye_color is EyeColor.BLUE
    assert first.result.undertone is Undertone.WARM
    assert first.result.skin_type is SkinType.DRY
    assert first.result.color_palette.lips == ["#aabbcc"]
    assert first.aesthetic_id == "a2"
    assert second.result.undertone is Undertone.UNKNOWN
    assert second.aesthetic_id is None


def test_history_empty_when_logged_out_or_failing(anon_pb, pb, session):
    assert storage.get_history(anon_pb) == []
    session.add("GET", "/facial_geometry/records", (403, {"message": "no"}))
    assert storage.get_history(pb) == []


def test_delete_record_returns_refreshed_history(pb, session):
    session.add("DELETE", "/facial_geometry/records/g1", (204, None))
    session.add("GET", "/facial_geometry/records", {"page": 1, "totalPages": 1, "items": []})
    assert storage.delete_record(pb, "g1") == []


def test_update_record_patches_both_collections(pb, session, result):
    session.add("PATCH", "/facial_geometry/records/g1", {"id": "g1"})
    session.add("PATCH", "/aesthetic_vectors/records/a1", {"id": "a1"})
    record = AnalysisRecord("g1", 0, "", result.with_profile(undertone="Olive"), geometry_id="g1", aesthetic_id="a1")

    storage.update_record(pb, record)

    assert session.calls_to("PATCH", "/aesthetic_vectors/records/a1")[0].json["undertone"] == "olive"
    assert "user" not in session.calls_to("PATCH", "/facial_geometry/records/g1")[0].json


# ---------- saved looks ----------
def test_validate_look():
    assert storage.validate_look("Date night") == []
    assert storage.validate_look("  ") == ["Please add a title for this look"]
    assert storage.validate_look("x" * 51)
    assert storage.validate_look("ok", "y" * 201)
    assert storage.validate_look("ok", occasion="gala") == ["Unknown occasion: gala"]


def test_create_look_trims_and_nulls_empty_fields(pb, session):
    session.add("POST", "/saved_looks/records", lambda call: {"id": "l1", **call.json})
    look = storage.create_look(pb, "  Glam ", image_src=None, description=" ", occasion="party", is_favorite=True)
    sent = session.calls[-1].json
    assert sent["title"] == "Glam"
    assert sent["description"] is None
    assert sent["products_used"] is None
    assert sent["user"] == "u1"
    assert look.id == "l1" and look.is_favorite


def test_create_look_rejects_missing_title(pb, session):
    with pytest.raises(StorageError, match="title"):
        storage.create_look(pb, "")
    assert session.calls == []


def test_toggle_favorite_flips_flag(pb, session):
    session.add("PATCH", "/saved_looks/records/l1", {"id": "l1"})
    look = SavedLook(id="l1", user="u1", title="T", is_favorite=False)
    assert storage.toggle_favorite(pb, look).is_favorite is True
    assert session.calls[-1].json == {"is_favorite": True}


def test_list_looks_filters_by_user(pb, session):
    session.add("GET", "/saved_looks/records", {"page": 1, "totalPages": 1, "items": [{"id": "l1", "title": "T", "occasion": "work"}]})
    looks = storage.list_looks(pb)
    assert looks[0].occasion == "work"
    assert session.calls[-1].params["filter"] == 'user = "u1"'

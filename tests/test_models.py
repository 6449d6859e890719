import pytest

from facetstudio.models import (
    AnalysisResult,
    AuthUser,
    EyeColor,
    FaceShape,
    ProductRecommendation,
    SavedLook,
    SkinType,
    Undertone,
)


@pytest.mark.parametrize(
    "enum_cls, raw, expected",
    [
        (FaceShape, "heart", FaceShape.HEART),
        (Undertone, " OLIVE ", Undertone.OLIVE),
        (SkinType, "Balanced", SkinType.BALANCED),
        (EyeColor, "violet", EyeColor.UNKNOWN),
        (EyeColor, None, EyeColor.UNKNOWN),
        (Undertone, Undertone.COOL, Undertone.COOL),
    ],
)
def test_categories_parse_leniently(enum_cls, raw, expected):
    assert enum_cls.parse(raw) is expected


def test_analysis_result_from_model_json():
    result = AnalysisResult.from_dict({
        "faceShape": "Square",
        "undertone": "Neutral",
        "skinType": "Dry",
        "eyeColor": "Hazel",
        "structuralAnalysis": "Strong jaw.",
        "recommendations": [
            {"category": "Blush", "reasoning": "r", "finish": "Satin", "applicationTip": "Tap.", "visualFocus": "Cheek tap"},
            "garbage",
        ],
        "meshData": [1, 2, 3],
        "symmetryScore": "high",
    })
    assert result.face_shape is FaceShape.SQUARE
    assert len(result.recommendations) == 1
    assert result.recommendations[0].application_tip == "Tap."
    assert result.mesh_data is None
    assert result.symmetry_score is None
    assert result.color_palette.lips == []


def test_analysis_result_to_dict_uses_wire_names():
    rec = ProductRecommendation("Lip", "r", "Gloss", "Dab.", "Center lip", texture="Gel")
    result = AnalysisResult(
        FaceShape.ROUND, Undertone.COOL, SkinType.OILY, EyeColor.BLUE,
        recommendations=[rec], mesh_data={"landmarks": []}, symmetry_score=90.0,
    )
    d = result.to_dict()
    assert d["faceShape"] == "Round"
    assert d["recommendations"][0] == {
        "category": "Lip", "reasoning": "r", "finish": "Gloss",
        "applicationTip": "Dab.", "visualFocus": "Center lip", "texture": "Gel",
    }
    assert d["meshData"] == {"landmarks": []}
    assert d["symmetryScore"] == 90.0
    assert AnalysisResult.from_dict(d) == result


def test_with_profile_leaves_original_untouched():
    original = AnalysisResult(FaceShape.OVAL, Undertone.WARM, SkinType.DRY, EyeColor.BROWN)
    edited = original.with_profile(undertone="cool", eye_color="Green")
    assert edited.undertone is Undertone.COOL
    assert edited.eye_color is EyeColor.GREEN
    assert edited.face_shape is FaceShape.OVAL
    assert original.undertone is Undertone.WARM


def test_records_from_backend_rows():
    look = SavedLook.from_record({"id": "l1", "user": "u1", "title": "Brunch", "description": "", "is_favorite": 1})
    assert look.description is None
    assert look.occasion == "everyday"
    assert look.is_favorite is True

    user = AuthUser.from_record({"id": "u1", "email": "a@b.co", "name": ""})
    assert user.name is None
    assert user.verified is False

# facetstudio/models.py
# Domain types shared by the Streamlit views and the service layer.

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class ViewState(str, Enum):
    DASHBOARD = "DASHBOARD"
    CAMERA = "CAMERA"
    GUIDE = "GUIDE"
    CHAT = "CHAT"
    GALLERY = "GALLERY"
    STYLE_BOARD = "STYLE_BOARD"


class _Category(str, Enum):
    """Categorical value returned by the model; unknown text maps to UNKNOWN."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls["UNKNOWN"]

    @classmethod
    def values(cls) -> List[str]:
        return [m.value for m in cls]


class FaceShape(_Category):
    OVAL = "Oval"
    ROUND = "Round"
    SQUARE = "Square"
    HEART = "Heart"
    DIAMOND = "Diamond"
    OBLONG = "Oblong"
    UNKNOWN = "Unknown"


class Undertone(_Category):
    COOL = "Cool"
    WARM = "Warm"
    NEUTRAL = "Neutral"
    OLIVE = "Olive"
    UNKNOWN = "Unknown"


class SkinType(_Category):
    DRY = "Dry"
    OILY = "Oily"
    COMBINATION = "Combination"
    BALANCED = "Balanced"
    UNKNOWN = "Unknown"


class EyeColor(_Category):
    BROWN = "Brown"
    BLUE = "Blue"
    GREEN = "Green"
    HAZEL = "Hazel"
    GRAY = "Gray"
    AMBER = "Amber"
    UNKNOWN = "Unknown"


@dataclass
class ProductRecommendation:
    category: str
    reasoning: str
    finish: str
    application_tip: str
    visual_focus: str
    texture: Optional[str] = None
    coverage: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProductRecommendation":
        return cls(
            category=str(d.get("category", "")),
            reasoning=str(d.get("reasoning", "")),
            finish=str(d.get("finish", "")),
            application_tip=str(d.get("applicationTip", "")),
            visual_focus=str(d.get("visualFocus", "")),
            texture=d.get("texture"),
            coverage=d.get("coverage"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "category": self.category,
            "reasoning": self.reasoning,
            "finish": self.finish,
            "applicationTip": self.application_tip,
            "visualFocus": self.visual_focus,
        }
        if self.texture is not None:
            out["texture"] = self.texture
        if self.coverage is not None:
            out["coverage"] = self.coverage
        return out


@dataclass
class ColorPalette:
    # each list is [soft, everyday, bold]
    lips: List[str] = field(default_factory=list)
    eyes: List[str] = field(default_factory=list)
    cheeks: List[str] = field(default_factory=list)
    explanation: str = ""

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "ColorPalette":
        d = d or {}
        return cls(
            lips=[str(x) for x in d.get("lips") or []],
            eyes=[str(x) for x in d.get("eyes") or []],
            cheeks=[str(x) for x in d.get("cheeks") or []],
            explanation=str(d.get("explanation", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lips": list(self.lips),
            "eyes": list(self.eyes),
            "cheeks": list(self.cheeks),
            "explanation": self.explanation,
        }


@dataclass
class AnalysisResult:
    face_shape: FaceShape
    undertone: Undertone
    skin_type: SkinType
    eye_color: EyeColor
    structural_analysis: str = ""
    skin_analysis: str = ""
    recommendations: List[ProductRecommendation] = field(default_factory=list)
    blush_placement: str = ""
    contour_placement: str = ""
    color_palette: ColorPalette = field(default_factory=ColorPalette)
    mesh_data: Optional[Dict[str, Any]] = None
    symmetry_score: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalysisResult":
        score = d.get("symmetryScore")
        return cls(
            face_shape=FaceShape.parse(d.get("faceShape")),
            undertone=Undertone.parse(d.get("undertone")),
            skin_type=SkinType.parse(d.get("skinType")),
            eye_color=EyeColor.parse(d.get("eyeColor")),
            structural_analysis=str(d.get("structuralAnalysis", "")),
            skin_analysis=str(d.get("skinAnalysis", "")),
            recommendations=[
                ProductRecommendation.from_dict(r)
                for r in (d.get("recommendations") or [])
                if isinstance(r, dict)
            ],
            blush_placement=str(d.get("blushPlacement", "")),
            contour_placement=str(d.get("contourPlacement", "")),
            color_palette=ColorPalette.from_dict(d.get("colorPalette")),
            mesh_data=d.get("meshData") if isinstance(d.get("meshData"), dict) else None,
            symmetry_score=float(score) if isinstance(score, (int, float)) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "faceShape": self.face_shape.value,
            "undertone": self.undertone.value,
            "skinType": self.skin_type.value,
            "eyeColor": self.eye_color.value,
            "structuralAnalysis": self.structural_analysis,
            "skinAnalysis": self.skin_analysis,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "blushPlacement": self.blush_placement,
            "contourPlacement": self.contour_placement,
            "colorPalette": self.color_palette.to_dict(),
        }
        if self.mesh_data is not None:
            out["meshData"] = self.mesh_data
        if self.symmetry_score is not None:
            out["symmetryScore"] = self.symmetry_score
        return out

    def with_profile(self, face_shape=None, undertone=None, skin_type=None, eye_color=None) -> "AnalysisResult":
        changes = {}
        if face_shape is not None:
            changes["face_shape"] = FaceShape.parse(face_shape)
        if undertone is not None:
            changes["undertone"] = Undertone.parse(undertone)
        if skin_type is not None:
            changes["skin_type"] = SkinType.parse(skin_type)
        if eye_color is not None:
            changes["eye_color"] = EyeColor.parse(eye_color)
        return replace(self, **changes)


@dataclass
class AnalysisRecord:
    id: str
    timestamp: float  # epoch milliseconds
    image_src: str
    result: AnalysisResult
    visual_guide_src: Optional[str] = None
    geometry_id: Optional[str] = None
    aesthetic_id: Optional[str] = None


@dataclass
class SavedLook:
    id: str
    user: str
    title: str
    description: Optional[str] = None
    image_src: Optional[str] = None
    occasion: str = "everyday"
    products_used: Optional[str] = None
    is_favorite: bool = False
    created: str = ""

    @classmethod
    def from_record(cls, r: Dict[str, Any]) -> "SavedLook":
        return cls(
            id=r.get("id", ""),
            user=r.get("user", ""),
            title=r.get("title", ""),
            description=r.get("description") or None,
            image_src=r.get("image_src") or None,
            occasion=r.get("occasion") or "everyday",
            products_used=r.get("products_used") or None,
            is_favorite=bool(r.get("is_favorite")),
            created=r.get("created", ""),
        )


@dataclass
class AuthUser:
    id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    verified: bool = False

    @classmethod
    def from_record(cls, r: Dict[str, Any]) -> "AuthUser":
        return cls(
            id=r.get("id", ""),
            email=r.get("email", ""),
            name=r.get("name") or None,
            avatar=r.get("avatar") or None,
            verified=bool(r.get("verified")),
        )


@dataclass
class TrendResearch:
    lips: List[str] = field(default_factory=list)
    eyes: List[str] = field(default_factory=list)
    cheeks: List[str] = field(default_factory=list)
    summary: str = ""
    sources: List[Dict[str, str]] = field(default_factory=list)

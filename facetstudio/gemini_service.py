# facetstudio/gemini_service.py
# Gemini calls: face analysis, trend research, face chart, coach chat.

import itertools
import json
import logging
import re
import time
import urllib.parse
from typing import Any, Callable, Dict, List, Optional

import feedparser
import google.generativeai as genai
from google.api_core import exceptions

from facetstudio.audit_log import estimate_tokens, with_audit_log
from facetstudio.backend import PocketBase
from facetstudio.color_harmony import derive_color_harmony
from facetstudio.config import Settings
from facetstudio.errors import AnalysisError
from facetstudio.imaging import load_image
from facetstudio.models import (
    AnalysisResult,
    EyeColor,
    FaceShape,
    SkinType,
    TrendResearch,
    Undertone,
)

log = logging.getLogger(__name__)

COACH_NAME = "FacetStudio"
CHAT_FALLBACK = "I'm having trouble connecting."
CHAT_ERROR = "Please try asking again."


# -----------------------------
# JSON
# -----------------------------
def safe_json_loads(text: str) -> Optional[dict]:
    if not text:
        return None
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except ValueError:
        pass
    cleaned = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE).strip("` \n\t")
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


# -----------------------------
# CLIENT (key rotation + model fallback)
# -----------------------------
class GeminiClient:
    def __init__(self, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.api_keys: List[str] = list(settings.gemini_api_keys)
        self._key_cycle = itertools.cycle(self.api_keys) if self.api_keys else None
        self.current_key: Optional[str] = next(self._key_cycle) if self._key_cycle else None
        self.text_model = settings.text_model
        self.image_model = settings.image_model
        self.last_error: str = ""
        self.last_raw: str = ""
        self._sleep = sleep
        if self.current_key:
            genai.configure(api_key=self.current_key)

    @property
    def available(self) -> bool:
        return bool(self.api_keys)

    def _rotate_key_if_possible(self):
        if self._key_cycle and len(self.api_keys) > 1:
            self.current_key = next(self._key_cycle)
            genai.configure(api_key=self.current_key)

    def call_with_retry(self, fn: Callable[[str], Any], model_name: str, fallback: Optional[str] = None):
        """Call ``fn(model_name)`` until it succeeds; ``None`` once attempts run out.

        A model that is not found is swapped for ``fallback`` on later
        attempts; quota errors rotate to the next API key.
        """
        if not self.available:
            self.last_error = "No Gemini API key configured."
            return None

        last_err = None
        model = model_name
        for _ in range(max(2, len(self.api_keys) * 2)):
            try:
                return fn(model)
            except Exception as e:
                last_err = e
                msg = f"{type(e).__name__}: {e}"
                self.last_error = msg
                log.warning("Gemini call failed on %s: %s", model, msg)

                if fallback and (isinstance(e, exceptions.NotFound) or "404" in msg or "is not found" in msg):
                    if model == self.text_model:
                        # later calls go straight to the fallback
                        self.text_model = fallback
                    model = fallback

                if isinstance(e, exceptions.ResourceExhausted):
                    self._rotate_key_if_possible()
                    self._sleep(0.8)
                else:
                    self._sleep(0.3)

        if last_err is not None:
            self.last_error = f"Final: {type(last_err).__name__}: {last_err}"
            log.error("Gemini gave up: %s", self.last_error)
        return None

    def generate_with_retry(
        self,
        contents,
        model_name: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[str] = None,
    ):
        primary = model_name or self.text_model
        fallback = self.settings.text_model_fallback if primary == self.text_model else None

        def _call(name):
            kwargs = {}
            if generation_config:
                kwargs["generation_config"] = generation_config
            if system_instruction:
                kwargs["system_instruction"] = system_instruction
            model = genai.GenerativeModel(name, **kwargs)
            return model.generate_content(contents)

        return self.call_with_retry(_call, primary, fallback)


def response_text(resp) -> str:
    if resp is None:
        return ""
    try:
        return resp.text or ""
    except ValueError:
        # blocked / non-text candidates raise on .text
        return ""


# -----------------------------
# FACE ANALYSIS
# -----------------------------
def _enum_string(enum_cls, description: str = "") -> Dict[str, Any]:
    schema = {"type": "STRING", "format": "enum", "enum": enum_cls.values()}
    if description:
        schema["description"] = description
    return schema


ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "faceShape": _enum_string(FaceShape),
        "undertone": _enum_string(Undertone),
        "skinType": _enum_string(SkinType),
        "eyeColor": _enum_string(EyeColor),
        "structuralAnalysis": {"type": "STRING", "description": "Empathetic, non-judgmental description of face proportions and balance."},
        "skinAnalysis": {"type": "STRING", "description": "Neutral, educational observation of skin characteristics like hydration or texture."},
        "blushPlacement": {"type": "STRING", "description": "Professional HAC (Highlight and Contour) placement for Lip + Cheek based on face shape."},
        "contourPlacement": {"type": "STRING", "description": "Professional HAC (Highlight and Contour) placement for Contour and Main/Brightening Highlights based on face shape."},
        "symmetryScore": {"type": "NUMBER", "description": "Facial symmetry score from 0-100, where 100 is perfectly symmetrical"},
        "meshData": {
            "type": "OBJECT",
            "description": "Facial landmark mesh coordinates, normalized to the image.",
            "properties": {
                "landmarks": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "x": {"type": "NUMBER"},
                            "y": {"type": "NUMBER"},
                            "z": {"type": "NUMBER"},
                        },
                    },
                },
            },
        },
        "colorPalette": {
            "type": "OBJECT",
            "properties": {
                "lips": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "List of 3 hex color codes suitable for lips."},
                "eyes": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "List of 3 hex color codes suitable for eyeshadow."},
                "cheeks": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "List of 3 hex color codes suitable for cheeks."},
                "explanation": {"type": "STRING", "description": "Brief explanation of why these colors work for the user's undertone."},
            },
            "required": ["lips", "eyes", "cheeks", "explanation"],
        },
        "recommendations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "category": {"type": "STRING"},
                    "reasoning": {"type": "STRING"},
                    "finish": {"type": "STRING"},
                    "applicationTip": {"type": "STRING"},
                    "visualFocus": {"type": "STRING", "description": "Short keyword phrase describing the motion of application (e.g., 'Stippling brush cheek')"},
                    "texture": {"type": "STRING", "description": "Ideal texture e.g. 'Creamy', 'Liquid', 'Fine Powder', 'Gel'"},
                    "coverage": {"type": "STRING", "description": "Recommended coverage level e.g. 'Sheer', 'Medium', 'Buildable'"},
                },
                "required": ["category", "reasoning", "finish", "applicationTip", "visualFocus", "texture", "coverage"],
            },
        },
    },
    "required": [
        "faceShape", "undertone", "skinType", "eyeColor", "structuralAnalysis", "skinAnalysis",
        "recommendations", "blushPlacement", "contourPlacement", "colorPalette", "symmetryScore",
    ],
}

ANALYSIS_PROMPT = f"""
Analyze the facial structure and skin characteristics of the person in this image to provide a personalized, ethical, and educational makeup guide.

ROLE: You are {COACH_NAME}, an empathetic, inclusive makeup coach with biometric analysis capabilities.
TONE: Celebratory, positive, and educational. Never label features as flaws.

GOALS:
1. Identify Face Shape.
2. Identify Undertone, Skin Type, and Eye Color.
3. Analyze facial landmarks and return them as meshData.landmarks (normalized x, y, z).
4. Calculate a facial symmetry score (0-100) where 100 is perfectly symmetrical. Return it as symmetryScore.
5. Use professional Highlight and Contour (HAC) patterns for everyday makeup specific to the detected face shape.
6. Use HAC terminology (Contour, Main Highlight, Brightening Highlight, Lip + Cheek) in the structural, contour and blush placement advice for an everyday, natural look.
7. Generate a Color Palette and product Recommendations.
"""


def analyze_face(
    client: GeminiClient,
    image_bytes: bytes,
    pb: Optional[PocketBase] = None,
    user_id: str = "anonymous",
) -> AnalysisResult:
    if not image_bytes:
        raise AnalysisError("No image to analyze")
    img = load_image(image_bytes)
    model_name = client.text_model
    generation_config = {
        "response_mime_type": "application/json",
        "response_schema": ANALYSIS_SCHEMA,
        "temperature": 0.4,
    }

    def _call():
        resp = client.generate_with_retry([img, ANALYSIS_PROMPT], model_name, generation_config)
        text = response_text(resp)
        client.last_raw = text[:2000]
        if not text:
            raise AnalysisError(client.last_error or "No response from AI")
        parsed = safe_json_loads(text)
        if not parsed:
            raise AnalysisError("AI response was not valid JSON")

        result = AnalysisResult.from_dict(parsed)
        # palette comes from the lookup tables, not the model
        result.color_palette = derive_color_harmony(result.undertone, result.eye_color, result.skin_type)
        return result, estimate_tokens(text), json.dumps(result.to_dict())

    return with_audit_log(pb, model_name, ANALYSIS_PROMPT, user_id, _call)


# -----------------------------
# TREND RESEARCH
# -----------------------------
def fetch_trend_headlines(query: str, region: str = "US", lang: str = "en", limit: int = 7) -> List[Dict[str, str]]:
    rss_url = (
        f"https://news.google.com/rss/search?q={urllib.parse.quote_plus(query.strip())}"
        f"&hl={lang}&gl={region}&ceid={region}:{lang}"
    )
    feed = feedparser.parse(rss_url)
    if getattr(feed, "bozo", False) and not feed.entries:
        log.warning("Trend feed unavailable: %s", getattr(feed, "bozo_exception", ""))

    seen = set()
    out = []
    for e in feed.entries:
        title = str(e.get("title", "")).strip()
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        out.append({"title": title, "uri": e.get("link", "")})
        if len(out) >= limit:
            break
    return out


def _grounding_sources(resp) -> List[Dict[str, str]]:
    out = []
    try:
        chunks = resp.candidates[0].grounding_metadata.grounding_chunks
    except (AttributeError, IndexError, TypeError):
        return out
    for chunk in chunks or []:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", "") if web else ""
        if uri:
            out.append({"uri": uri, "title": getattr(web, "title", "") or "Beauty Source"})
    return out


def research_makeup_trends(
    client: GeminiClient,
    undertone: str,
    eye_color: str,
    headlines: Optional[List[Dict[str, str]]] = None,
    pb: Optional[PocketBase] = None,
    user_id: str = "anonymous",
) -> TrendResearch:
    headlines = headlines or []
    titles = [h["title"] for h in headlines if h.get("title")]
    prompt = f"""
Return JSON only: {{"lips": [hex, hex, hex], "eyes": [hex, hex, hex], "cheeks": [hex, hex, hex], "summary": "string"}}

Describe the latest makeup color trends specifically for someone with {undertone} undertones and {eye_color} eyes.
Provide lip, eye, and cheek hex codes and a brief summary.
Recent beauty headlines: {titles}
"""
    model_name = client.text_model

    def _call():
        resp = client.generate_with_retry(prompt, model_name)
        if resp is None:
            raise AnalysisError(client.last_error or "No response from AI")
        text = response_text(resp)
        parsed = safe_json_loads(text)
        if parsed is None:
            log.warning("Failed to parse trend research JSON")
            parsed = {}

        sources = _grounding_sources(resp) or [
            {"uri": h.get("uri", ""), "title": h.get("title") or "Beauty Source"}
            for h in headlines if h.get("uri")
        ]
        research = TrendResearch(
            lips=[str(x) for x in parsed.get("lips") or []],
            eyes=[str(x) for x in parsed.get("eyes") or []],
            cheeks=[str(x) for x in parsed.get("cheeks") or []],
            summary=str(parsed.get("summary") or text),
            sources=sources[:4],
        )
        return research, estimate_tokens(text), text

    return with_audit_log(pb, model_name, prompt, user_id, _call)


# -----------------------------
# FACE CHART
# -----------------------------
def face_chart_prompt(face_shape: str, contour: str, blush: str) -> str:
    return f"""
Generate EXACTLY ONE front facing professional illustrated face chart image adjusted for a {face_shape} face shape following Highlight and Contour 3D foundation principles for an everyday look.

Map placement:
- Contour (dark): {contour}
- Highlight (light/bright): Use Brightening Highlight in T-zone and under eyes.
- Lip + Cheek (rose): {blush}

The drawing must be strictly front-facing. Clean minimalist line drawing, realistic color-coded shading. No arrows. No text on face.
"""


def generate_face_chart(
    client: GeminiClient,
    face_shape: str,
    contour: str,
    blush: str,
    pb: Optional[PocketBase] = None,
    user_id: str = "anonymous",
) -> bytes:
    prompt = face_chart_prompt(face_shape, contour, blush)
    model_name = client.image_model

    def _call():
        resp = client.generate_with_retry(prompt, model_name)
        if resp is None:
            raise AnalysisError(client.last_error or "No image generated")
        try:
            parts = resp.candidates[0].content.parts
        except (AttributeError, IndexError):
            parts = []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if inline and inline.data:
                return inline.data, None, "Image generated successfully"
        raise AnalysisError("No image generated")

    return with_audit_log(pb, model_name, prompt, user_id, _call)


# -----------------------------
# COACH CHAT
# -----------------------------
SYSTEM_INSTRUCTION = (
    f"You are {COACH_NAME}, a world-class AI makeup coach specializing in "
    "Highlight and Contour (3D foundation) techniques."
)


def welcome_message(analysis: AnalysisResult) -> str:
    return (
        f"Hi! I've analyzed your {analysis.face_shape.value} face shape and "
        f"{analysis.undertone.value} undertone. What specific technique would you like to learn today?"
    )


def build_chat_history(analysis: AnalysisResult, messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    """Profile context turn + acknowledgement, then the visible conversation."""
    context = (
        f"Context: User has {analysis.face_shape.value} face, {analysis.undertone.value} undertone, "
        f"{analysis.skin_type.value} skin, {analysis.eye_color.value} eyes. "
        f"Structural notes: {analysis.structural_analysis}."
    )
    history = [
        {"role": "user", "parts": [context]},
        {"role": "model", "parts": ["Understood. I have the user's profile loaded."]},
    ]
    for m in messages:
        role = "model" if m.get("role") in ("model", "assistant") else "user"
        history.append({"role": role, "parts": [m.get("text", "")]})
    return history


def send_chat_message(
    client: GeminiClient,
    history: List[Dict[str, Any]],
    message: str,
    pb: Optional[PocketBase] = None,
    user_id: str = "anonymous",
) -> str:
    model_name = client.text_model

    def _chat(name):
        model = genai.GenerativeModel(name, system_instruction=SYSTEM_INSTRUCTION)
        return model.start_chat(history=history).send_message(message)

    def _call():
        resp = client.call_with_retry(_chat, model_name, client.settings.text_model_fallback)
        if resp is None:
            raise AnalysisError(client.last_error or "Chat failed")
        text = response_text(resp) or CHAT_FALLBACK
        return text, estimate_tokens(text), text

    try:
        return with_audit_log(pb, model_name, f"System: {SYSTEM_INSTRUCTION}\nUser: {message}", user_id, _call)
    except AnalysisError as e:
        log.error("Chat failed: %s", e)
        return CHAT_ERROR

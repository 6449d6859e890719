# facetstudio/ui.py
# Streamlit UI primitives: routing state, toasts, confirm modal, skeletons, swatches.

import html
from typing import Any, Dict, List, MutableMapping, Optional

import streamlit as st

from facetstudio.models import ViewState


STYLING = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Cormorant+Garamond:wght@600;700&family=Montserrat:wght@400;500;600&display=swap');
html, body, [class*="css"], .stMarkdown, p, li, div { font-family:'Montserrat',sans-serif!important; color:#2a1a1f; line-height:1.55!important;}
html, body, .stApp, [data-testid="stMain"], [data-testid="stAppViewContainer"] { background:#fff1f2!important; }
.block-container{ max-width:480px!important; padding-top:1.2rem!important; padding-bottom:5rem!important;}
.hero{ background:linear-gradient(160deg,#fda4af 0%,#e11d48 100%); color:#fff; padding:32px 22px; border-radius:24px; margin-bottom:16px; text-align:center; box-shadow:0 18px 40px rgba(225,29,72,0.18);}
.hero h1{ font-family:'Cormorant Garamond',serif!important; font-weight:700!important; color:#fff!important; margin:0; font-size:42px!important;}
.hero p{ color:rgba(255,255,255,0.88)!important; margin:8px 0 0 0; font-size:15px!important;}
.card{ border:1px solid rgba(225,29,72,0.10); border-radius:20px; padding:16px; background:#fff; box-shadow:0 10px 30px rgba(0,0,0,0.05); margin-bottom:12px;}
.small-muted{ color:rgba(0,0,0,0.55)!important; font-size:13px!important;}
.stButton>button, .stDownloadButton>button { border-radius:14px!important; padding:0.6rem 0.9rem!important; font-weight:600!important;}
.chip-wrap{ display:flex; gap:12px; flex-wrap:wrap; align-items:flex-start;}
.chip{ display:flex; flex-direction:column; align-items:center; width:72px;}
.swatch{ border-radius:50%; border:2px solid #fff; box-shadow:0 4px 14px rgba(0,0,0,0.12);}
.chip-label{ font-size:11px!important; font-weight:600; margin-top:6px; text-align:center;}
.chip-hex{ font-size:10px!important; opacity:0.6;}
.pill-row{ display:flex; gap:8px; flex-wrap:wrap; align-items:center;}
.pill{ display:inline-block; padding:4px 10px; border-radius:999px; background:#ffe4e6; border:1px solid rgba(225,29,72,0.15); font-weight:600; font-size:12px!important;}
.skeleton{ background:linear-gradient(90deg,#ffe4e6 25%,#fecdd3 50%,#ffe4e6 75%); background-size:200% 100%; animation:shimmer 1.4s infinite; border-radius:14px; margin-bottom:10px;}
@keyframes shimmer{ 0%{background-position:200% 0;} 100%{background-position:-200% 0;} }
</style>
"""

SHADE_LABELS = ["Soft", "Everyday", "Bold"]

TOASTS_KEY = "toasts"
CONFIRM_KEY = "confirm"
_TOAST_ICONS = {"success": "✅", "error": "⚠️", "info": "ℹ️"}


# -----------------------------
# ROUTING / STATE
# -----------------------------
def init_state(state: MutableMapping[str, Any], defaults: Dict[str, Any]):
    for key, value in defaults.items():
        if key not in state:
            state[key] = value


def set_view(state: MutableMapping[str, Any], view: ViewState, has_analysis: bool = True) -> ViewState:
    # chat needs an active analysis to talk about
    if view == ViewState.CHAT and not has_analysis:
        view = ViewState.GUIDE
    state["view"] = view
    return view


def navigate_to(view: ViewState, has_analysis: bool = True):
    set_view(st.session_state, view, has_analysis)
    st.rerun()


# -----------------------------
# TOASTS
# -----------------------------
def queue_toast(state: MutableMapping[str, Any], message: str, kind: str = "info"):
    """Toasts survive the st.rerun() that usually follows an action."""
    state.setdefault(TOASTS_KEY, []).append({"message": message, "kind": kind})


def drain_toasts(state: MutableMapping[str, Any]) -> List[Dict[str, str]]:
    pending = list(state.get(TOASTS_KEY) or [])
    state[TOASTS_KEY] = []
    return pending


def flush_toasts():
    for t in drain_toasts(st.session_state):
        st.toast(t["message"], icon=_TOAST_ICONS.get(t["kind"], "ℹ️"))


# -----------------------------
# CONFIRM MODAL
# -----------------------------
def request_confirm(state: MutableMapping[str, Any], action: str, target: str):
    state[CONFIRM_KEY] = {"action": action, "target": target}


def pending_confirm(state: MutableMapping[str, Any], action: str) -> Optional[str]:
    c = state.get(CONFIRM_KEY) or {}
    return c.get("target") if c.get("action") == action else None


def clear_confirm(state: MutableMapping[str, Any]):
    state.pop(CONFIRM_KEY, None)


def confirm_modal(action: str, title: str, message: str, confirm_text: str = "Delete", cancel_text: str = "Cancel") -> Optional[str]:
    """Render the pending confirmation for ``action``; returns its target once confirmed."""
    target = pending_confirm(st.session_state, action)
    if target is None:
        return None
    with st.container(border=True):
        st.markdown(f"**{html.escape(title)}**")
        st.caption(message)
        c1, c2 = st.columns(2)
        with c1:
            if st.button(cancel_text, key=f"cancel_{action}", use_container_width=True):
                clear_confirm(st.session_state)
                st.rerun()
        with c2:
            if st.button(confirm_text, key=f"confirm_{action}", type="primary", use_container_width=True):
                clear_confirm(st.session_state)
                return target
    return None


# -----------------------------
# HAC ZONES
# -----------------------------
# (title, area, fixed guidance or "contour"/"blush" to use the analysis placement, coach topic)
HAC_ZONES = [
    ("Contour: Forehead", "Forehead", "contour", "seint contour forehead"),
    ("Brightening Highlight", "Nose & forehead", "Apply in a slim line down the bridge of your nose and center of forehead.", "seint brightening highlight"),
    ("Brightening Highlight", "Eyes", "Place in the inner and outer corners of the eyes for a natural lift.", "seint brightening highlight eyes"),
    ("Lip + Cheek", "Cheeks", "blush", "seint lip and cheek"),
    ("Contour: Cheekbones", "Cheekbones", "contour", "seint contour cheekbones"),
    ("Contour: Jawline", "Jawline", "Follow the shadow of your jaw for soft definition.", "seint contour jawline"),
    ("Main Highlight", "Center", "Your foundation shade. Use sparingly.", "seint main highlight"),
]


def hac_zones(analysis) -> List[Dict[str, str]]:
    """Placement zones for the face chart; contour and blush zones carry the analysis text."""
    by_source = {"contour": analysis.contour_placement, "blush": analysis.blush_placement}
    return [
        {
            "title": title,
            "area": area,
            "content": by_source[text] if text in by_source else text,
            "topic": topic,
        }
        for title, area, text, topic in HAC_ZONES
    ]


def coach_query(topic: str, face_shape: str) -> str:
    return f"Can you explain more about {topic} for my {face_shape} face shape?"


# -----------------------------
# SKELETONS / SWATCHES
# -----------------------------
def skeleton_html(rows: int = 3, height_px: int = 64) -> str:
    return "".join(f"<div class='skeleton' style='height:{height_px}px;'></div>" for _ in range(max(0, rows)))


def gallery_skeleton(rows: int = 4):
    st.markdown(skeleton_html(rows, 72), unsafe_allow_html=True)


def pills_html(items: List[str]) -> str:
    items = [str(x).strip() for x in (items or []) if str(x).strip()]
    if not items:
        return ""
    return "<div class='pill-row'>" + "".join(f"<span class='pill'>{html.escape(i)}</span>" for i in items) + "</div>"


def palette_chips_html(colors: List[str], labels: Optional[List[str]] = None, size_px: int = 40) -> str:
    if not colors:
        return ""
    labels = labels or SHADE_LABELS
    parts = []
    for i, c in enumerate(colors[:10]):
        chex = html.escape(str(c).strip() or "#DDDDDD")
        label = html.escape(labels[i]) if i < len(labels) else ""
        parts.append(
            f"<div class='chip'>"
            f"<div class='swatch' style='width:{size_px}px;height:{size_px}px;background:{chex};'></div>"
            f"<div class='chip-label'>{label}</div>"
            f"<div class='chip-hex'>{chex}</div>"
            f"</div>"
        )
    return "<div class='chip-wrap'>" + "".join(parts) + "</div>"

# app.py
# FACETSTUDIO: Streamlit + Gemini + PocketBase makeup coach

import json
import logging
import time
from datetime import datetime
from typing import Optional

import streamlit as st
from PIL import UnidentifiedImageError

from facetstudio import auth, storage, subscriptions
from facetstudio.backend import AuthStore, PocketBase
from facetstudio.color_harmony import derive_color_harmony
from facetstudio.config import load_settings, run_startup_checks, setup_logging
from facetstudio.errors import AnalysisError, AuthError, PocketBaseError, StorageError
from facetstudio.gemini_service import (
    GeminiClient,
    analyze_face,
    build_chat_history,
    fetch_trend_headlines,
    generate_face_chart,
    research_makeup_trends,
    send_chat_message,
    welcome_message,
)
from facetstudio.imaging import (
    IMAGE_TYPES,
    crop_to_face,
    estimate_skin_tone_hex,
    is_image_upload,
    is_readable_image,
    load_image,
    prepare_capture,
    to_data_url,
    from_data_url,
)
from facetstudio.models import AnalysisRecord, EyeColor, FaceShape, SkinType, Undertone, ViewState
from facetstudio.ui import (
    STYLING,
    coach_query,
    confirm_modal,
    flush_toasts,
    gallery_skeleton,
    hac_zones,
    init_state,
    navigate_to,
    palette_chips_html,
    pills_html,
    queue_toast,
    request_confirm,
)

log = logging.getLogger("facetstudio.app")


# -----------------------------
# PAGE CONFIG
# -----------------------------
st.set_page_config(
    page_title="FacetStudio | AI Makeup Coach",
    page_icon="💄",
    layout="centered",
    initial_sidebar_state="collapsed",
)
st.markdown(STYLING, unsafe_allow_html=True)


# -----------------------------
# SETTINGS / CLIENTS
# -----------------------------
@st.cache_resource(show_spinner=False)
def get_settings():
    settings = load_settings()
    setup_logging(settings.log_level)
    run_startup_checks(settings)
    return settings


@st.cache_resource(show_spinner=False)
def get_gemini() -> GeminiClient:
    return GeminiClient(get_settings())


SETTINGS = get_settings()
GEMINI = get_gemini()

init_state(st.session_state, {
    "view": ViewState.DASHBOARD,
    "auth_store": AuthStore(),
    "auth_mode": "login",
    "active_record": None,
    "chat_messages": [],
    "chat_record_id": None,
    "initial_chat_query": None,
    "onboarding_done": False,
    "onboarding_step": 0,
    "editing": False,
    "research": None,
    "capture_bytes": None,
    "look_step": None,
    "look_image": None,
})

PB = PocketBase(SETTINGS.pb_url, st.session_state["auth_store"], timeout=SETTINGS.request_timeout)


def current_user_id() -> str:
    user = auth.get_current_user(PB)
    return user.id if user else "anonymous"


def active_record() -> Optional[AnalysisRecord]:
    return st.session_state.get("active_record")


def _remember_gemini_state():
    st.session_state["gemini_last_error"] = GEMINI.last_error
    st.session_state["gemini_last_raw"] = GEMINI.last_raw


@st.cache_data(ttl=3600, show_spinner=False)
def get_trend_headlines(undertone: str, eye_color: str):
    try:
        return fetch_trend_headlines(f"makeup trends {undertone} undertone {eye_color} eyes")
    except Exception as e:
        log.warning("Trend headlines unavailable: %s", e)
        return []


# -----------------------------
# AUTH
# -----------------------------
def render_auth():
    st.markdown(
        """
        <div class="hero">
            <h1>FacetStudio</h1>
            <p>Your AI makeup coach · Personalized, skill-building guidance</p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    mode = st.session_state["auth_mode"]
    st.markdown("<div class='card'>", unsafe_allow_html=True)

    if mode == "login":
        st.subheader("Welcome back")
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)
        if submitted:
            if not email or not password:
                st.error("Please enter your email and password")
            else:
                try:
                    auth.login(PB, email, password)
                    queue_toast(st.session_state, "Welcome back!", "success")
                    st.rerun()
                except AuthError as e:
                    st.error(str(e))

    elif mode == "signup":
        st.subheader("Create your account")
        with st.form("signup_form"):
            name = st.text_input("Name (optional)")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            confirm = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Create account", type="primary", use_container_width=True)
        if submitted:
            if not auth.is_valid_email(email):
                st.error("Please enter a valid email address")
            elif len(password) < 8:
                st.error("Password must be at least 8 characters")
            elif password != confirm:
                st.error("Passwords do not match")
            else:
                try:
                    auth.register(PB, email, password, name or None)
                    queue_toast(st.session_state, "Account created!", "success")
                    st.rerun()
                except AuthError as e:
                    st.error(str(e))

    else:
        st.subheader("Sign in with a magic link")
        with st.form("magic_form"):
            email = st.text_input("Email")
            submitted = st.form_submit_button("Send magic link", type="primary", use_container_width=True)
        if submitted:
            try:
                auth.request_magic_link(PB, email)
                st.success("Magic link sent! Check your email.")
            except AuthError as e:
                st.error(str(e))

    st.markdown("</div>", unsafe_allow_html=True)

    c1, c2, c3 = st.columns(3)
    for col, (label, target) in zip((c1, c2, c3), (("Sign in", "login"), ("Sign up", "signup"), ("Magic link", "magic"))):
        with col:
            if st.button(label, use_container_width=True, disabled=(mode == target), key=f"auth_{target}"):
                st.session_state["auth_mode"] = target
                st.rerun()


# -----------------------------
# ONBOARDING
# -----------------------------
ONBOARDING_STEPS = [
    ("✨", "Welcome to FacetStudio", "Your AI-powered makeup coach for personalized, skill-building education. Discover your unique facets and learn techniques that work for you."),
    ("📸", "Capture & Analyze", "Take a selfie and our AI analyzes your facial structure, skin characteristics, and undertones."),
    ("📖", "Your Personalized Guide", "Get custom color palettes, product recommendations, and Highlight and Contour placement tailored to you."),
    ("💬", "Ask Your Coach", "Chat with AI to learn techniques, understand color theory, and build your makeup skills."),
]


def render_onboarding():
    step = st.session_state["onboarding_step"]
    icon, title, text = ONBOARDING_STEPS[step]
    st.markdown(
        f"<div class='card' style='text-align:center;padding:36px 18px;'>"
        f"<div style='font-size:56px;'>{icon}</div><h2>{title}</h2><p>{text}</p>"
        f"<p class='small-muted'>{step + 1} / {len(ONBOARDING_STEPS)}</p></div>",
        unsafe_allow_html=True,
    )
    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("Back", use_container_width=True, disabled=step == 0):
            st.session_state["onboarding_step"] = step - 1
            st.rerun()
    with c2:
        if st.button("Skip", use_container_width=True):
            st.session_state["onboarding_done"] = True
            st.rerun()
    with c3:
        last = step == len(ONBOARDING_STEPS) - 1
        if st.button("Get started" if last else "Next", type="primary", use_container_width=True):
            if last:
                st.session_state["onboarding_done"] = True
            else:
                st.session_state["onboarding_step"] = step + 1
            st.rerun()


# -----------------------------
# DASHBOARD
# -----------------------------
def render_dashboard():
    user = auth.get_current_user(PB)
    st.markdown(
        f"""
        <div class="hero">
            <h1>FacetStudio</h1>
            <p>Hi {(user.name if user and user.name else 'there')} · Let's find your facets</p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    if st.button("📸 Start analysis", type="primary", use_container_width=True):
        navigate_to(ViewState.CAMERA)
    if active_record() is not None:
        if st.button("📖 View my results", use_container_width=True):
            navigate_to(ViewState.GUIDE)

    st.markdown(
        "<div class='card'><b>How it works</b><br>"
        "<span class='small-muted'>1. Take a well-lit, front-facing selfie. "
        "2. Get your face shape, undertone and palette. "
        "3. Learn placements and ask your coach.</span></div>",
        unsafe_allow_html=True,
    )


# -----------------------------
# CAMERA / CAPTURE
# -----------------------------
UNREADABLE_IMAGE = "That file isn't a photo we can read. Please use a JPG, PNG or WEBP image."


def handle_capture(raw: bytes):
    quota = subscriptions.check_analysis_limit(PB)
    if quota.has_limit and quota.remaining == 0:
        queue_toast(st.session_state, f"You've used all {quota.used} analyses on the {quota.plan_name} plan this month.", "error")
        navigate_to(ViewState.DASHBOARD)

    try:
        jpeg = prepare_capture(raw)
        img = load_image(jpeg)
        skin_tone = estimate_skin_tone_hex(img)
        with st.spinner("Analyzing your features…"):
            result = analyze_face(GEMINI, jpeg, PB, current_user_id())
        _remember_gemini_state()
        record = storage.save_analysis(PB, to_data_url(jpeg), result, skin_tone)
    except UnidentifiedImageError:
        st.session_state["capture_bytes"] = None
        queue_toast(st.session_state, UNREADABLE_IMAGE, "error")
        navigate_to(ViewState.CAMERA)
        return
    except (AnalysisError, StorageError, PocketBaseError) as e:
        _remember_gemini_state()
        log.error("Analysis error: %s", e)
        queue_toast(st.session_state, "We couldn't analyze the image. Please try again with better lighting.", "error")
        navigate_to(ViewState.DASHBOARD)
        return

    st.session_state["active_record"] = record
    st.session_state["research"] = None
    st.session_state["editing"] = False
    st.session_state["capture_bytes"] = None
    queue_toast(st.session_state, "Analysis complete!", "success")
    navigate_to(ViewState.GUIDE)


def capture_widget(key: str) -> Optional[bytes]:
    """Camera or upload; returns raw image bytes once the user has one."""
    tab_cam, tab_upload = st.tabs(["Camera", "Upload"])
    with tab_cam:
        st.caption("Center your face, face the light, and remove glasses if you can.")
        shot = st.camera_input("Take a selfie", key=f"{key}_camera", label_visibility="collapsed")
    with tab_upload:
        uploaded = st.file_uploader("Upload a photo", type=IMAGE_TYPES, key=f"{key}_upload")
    picked = shot or uploaded
    if picked is None:
        return None
    data = picked.getvalue()
    if not (is_image_upload(picked.name, picked.type) and is_readable_image(data)):
        st.error(UNREADABLE_IMAGE)
        return None
    return data


def render_camera():
    top = st.columns([1, 3])
    with top[0]:
        if st.button("← Back"):
            st.session_state["capture_bytes"] = None
            navigate_to(ViewState.DASHBOARD)
    st.markdown("## Capture")

    raw = st.session_state.get("capture_bytes")
    if raw is None:
        raw = capture_widget("selfie")
        if raw is not None:
            st.session_state["capture_bytes"] = raw
            st.rerun()
        return

    try:
        preview = crop_to_face(load_image(prepare_capture(raw)))
    except UnidentifiedImageError:
        st.session_state["capture_bytes"] = None
        queue_toast(st.session_state, UNREADABLE_IMAGE, "error")
        st.rerun()
    st.image(preview, caption="Preview", use_container_width=True)
    c1, c2 = st.columns(2)
    with c1:
        if st.button("↺ Retake", use_container_width=True):
            st.session_state["capture_bytes"] = None
            st.rerun()
    with c2:
        if st.button("✨ Analyze", type="primary", use_container_width=True):
            handle_capture(raw)


# -----------------------------
# GUIDE
# -----------------------------
def update_active(record: AnalysisRecord, message: str = "Profile updated"):
    try:
        storage.update_record(PB, record)
    except StorageError as e:
        queue_toast(st.session_state, str(e), "error")
        return
    st.session_state["active_record"] = record
    queue_toast(st.session_state, message, "success")


def ask_coach(query: str):
    st.session_state["initial_chat_query"] = query
    navigate_to(ViewState.CHAT, has_analysis=active_record() is not None)


def render_profile_editor(record: AnalysisRecord):
    r = record.result
    with st.form("edit_profile"):
        face = st.selectbox("Face shape", FaceShape.values(), index=FaceShape.values().index(r.face_shape.value))
        undertone = st.selectbox("Undertone", Undertone.values(), index=Undertone.values().index(r.undertone.value))
        skin = st.selectbox("Skin type", SkinType.values(), index=SkinType.values().index(r.skin_type.value))
        eye = st.selectbox("Eye color", EyeColor.values(), index=EyeColor.values().index(r.eye_color.value))
        c1, c2 = st.columns(2)
        with c1:
            cancel = st.form_submit_button("Cancel", use_container_width=True)
        with c2:
            save = st.form_submit_button("Save", type="primary", use_container_width=True)

    if cancel:
        st.session_state["editing"] = False
        st.rerun()
    if save:
        updated = r.with_profile(face, undertone, skin, eye)
        updated.color_palette = derive_color_harmony(updated.undertone, updated.eye_color, updated.skin_type)
        # a new face shape invalidates the chart
        chart = record.visual_guide_src if updated.face_shape == r.face_shape else None
        new_record = AnalysisRecord(
            id=record.id, timestamp=record.timestamp, image_src=record.image_src, result=updated,
            visual_guide_src=chart, geometry_id=record.geometry_id, aesthetic_id=record.aesthetic_id,
        )
        st.session_state["editing"] = False
        update_active(new_record)
        st.rerun()


def render_guide():
    record = active_record()
    if record is None:
        st.markdown("## No analysis yet")
        if st.button("Start analysis", type="primary", use_container_width=True):
            navigate_to(ViewState.CAMERA)
        return

    r = record.result
    head = st.columns([3, 1, 1])
    with head[0]:
        st.markdown("## Facet Profile")
    with head[1]:
        if not st.session_state["editing"] and st.button("✏️", help="Edit profile"):
            st.session_state["editing"] = True
            st.rerun()
    with head[2]:
        st.download_button(
            "⬇️", data=json.dumps(r.to_dict(), indent=2), file_name=f"FacetStudio-Guide-{int(time.time())}.json",
            mime="application/json", help="Export guide",
        )

    if record.image_src:
        _, img_bytes = from_data_url(record.image_src)
        st.image(img_bytes, width=140)

    if st.session_state["editing"]:
        render_profile_editor(record)
        return

    m1, m2 = st.columns(2)
    m1.metric("Face shape", r.face_shape.value)
    m2.metric("Undertone", r.undertone.value)
    m3, m4 = st.columns(2)
    m3.metric("Skin type", r.skin_type.value)
    m4.metric("Eyes", r.eye_color.value)
    if r.symmetry_score is not None:
        st.progress(min(1.0, max(0.0, r.symmetry_score / 100)), text=f"Symmetry {r.symmetry_score:.0f}/100")

    palette = derive_color_harmony(r.undertone, r.eye_color, r.skin_type)
    st.markdown("<div class='card'>", unsafe_allow_html=True)
    st.subheader("Your palette")
    for label, colors in (("Lips", palette.lips), ("Eyes", palette.eyes), ("Cheeks", palette.cheeks)):
        st.write(f"**{label}**")
        st.markdown(palette_chips_html(colors), unsafe_allow_html=True)
    st.caption(palette.explanation)
    st.markdown("</div>", unsafe_allow_html=True)

    with st.expander("Structure & skin", expanded=False):
        st.write(r.structural_analysis)
        st.write(r.skin_analysis)

    st.subheader("Placement (HAC)")
    for zone in hac_zones(r):
        with st.expander(f"{zone['title']} · {zone['area']}", expanded=False):
            st.write(zone["content"] or "—")
            if st.button("💬 Ask coach for details", key=f"ask_{zone['topic']}"):
                ask_coach(coach_query(zone["topic"], r.face_shape.value))

    st.subheader("Recommendations")
    for i, rec in enumerate(r.recommendations):
        with st.expander(f"{rec.category} · {rec.finish}"):
            st.markdown(pills_html([x for x in (rec.texture, rec.coverage) if x]), unsafe_allow_html=True)
            st.write(rec.reasoning)
            st.caption(f"How to apply: {rec.application_tip}")
            if st.button("💬 Ask coach", key=f"ask_rec_{i}"):
                ask_coach(f"How do I apply {rec.category} ({rec.visual_focus}) for my {r.face_shape.value} face?")

    st.subheader("Face chart")
    if record.visual_guide_src:
        _, chart = from_data_url(record.visual_guide_src)
        st.image(chart, use_container_width=True)
        st.download_button("Download chart", data=chart, file_name="facetstudio-face-chart.png", mime="image/png")
    elif st.button("🎨 Generate visual guide", use_container_width=True):
        try:
            with st.spinner("Drawing your face chart…"):
                png = generate_face_chart(GEMINI, r.face_shape.value, r.contour_placement, r.blush_placement, PB, current_user_id())
            record.visual_guide_src = to_data_url(png, "image/png")
            st.session_state["active_record"] = record
            queue_toast(st.session_state, "Visual guide ready", "success")
        except AnalysisError as e:
            log.error("Face chart generation failed: %s", e)
            queue_toast(st.session_state, "Could not generate visual guide right now.", "error")
        _remember_gemini_state()
        st.rerun()

    st.subheader("Trend research")
    research = st.session_state.get("research")
    if research is None:
        if st.button("🔎 Research current trends", use_container_width=True):
            headlines = get_trend_headlines(r.undertone.value, r.eye_color.value)
            try:
                with st.spinner("Researching…"):
                    st.session_state["research"] = research_makeup_trends(
                        GEMINI, r.undertone.value, r.eye_color.value, headlines, PB, current_user_id(),
                    )
            except AnalysisError as e:
                log.error("Web research failed: %s", e)
                queue_toast(st.session_state, "Trend research is unavailable right now.", "error")
            _remember_gemini_state()
            st.rerun()
    else:
        st.write(research.summary)
        for label, colors in (("Lips", research.lips), ("Eyes", research.eyes), ("Cheeks", research.cheeks)):
            if colors:
                st.write(f"**{label}**")
                st.markdown(palette_chips_html(colors, labels=[]), unsafe_allow_html=True)
        for s in research.sources:
            st.markdown(f"- [{s['title']}]({s['uri']})")


# -----------------------------
# CHAT
# -----------------------------
def render_chat():
    record = active_record()
    if record is None:
        navigate_to(ViewState.GUIDE, has_analysis=False)
        return
    analysis = record.result

    if st.session_state["chat_record_id"] != record.id:
        st.session_state["chat_record_id"] = record.id
        st.session_state["chat_messages"] = [{"role": "model", "text": welcome_message(analysis)}]

    st.markdown("## Coach Chat")
    st.caption("Ask about techniques, tools, or color theory.")

    messages = st.session_state["chat_messages"]
    for m in messages:
        with st.chat_message("assistant" if m["role"] == "model" else "user"):
            st.write(m["text"])

    query = st.chat_input("Ask specific questions...")
    initial = st.session_state.get("initial_chat_query")
    if initial and not query:
        query = initial
        st.session_state["initial_chat_query"] = None

    if query and query.strip():
        history = build_chat_history(analysis, messages)
        messages.append({"role": "user", "text": query})
        with st.chat_message("user"):
            st.write(query)
        with st.chat_message("assistant"):
            with st.spinner("…"):
                reply = send_chat_message(GEMINI, history, query, PB, current_user_id())
            st.write(reply)
        messages.append({"role": "model", "text": reply})
        _remember_gemini_state()


# -----------------------------
# GALLERY
# -----------------------------
def render_gallery():
    st.markdown("## History")
    st.caption("Your past consultations and looks.")

    placeholder = st.empty()
    with placeholder.container():
        gallery_skeleton()
    history = storage.get_history(PB)
    placeholder.empty()

    target = confirm_modal("delete_analysis", "Delete analysis?", "This permanently removes this analysis.")
    if target:
        try:
            history = storage.delete_record(PB, target)
            queue_toast(st.session_state, "Analysis deleted", "success")
        except StorageError as e:
            queue_toast(st.session_state, str(e), "error")
        st.rerun()

    if not history:
        st.markdown("<div class='card' style='text-align:center;'><b>No Past Analyses</b><br>"
                    "<span class='small-muted'>Start your first analysis to build your personalized gallery.</span></div>",
                    unsafe_allow_html=True)
        if st.button("Start analysis", type="primary", use_container_width=True):
            navigate_to(ViewState.CAMERA)
        return

    for rec in history:
        when = datetime.fromtimestamp(rec.timestamp / 1000).strftime("%b %d, %H:%M") if rec.timestamp else ""
        c1, c2, c3 = st.columns([4, 1, 1])
        with c1:
            st.markdown(f"**{rec.result.face_shape.value} • {rec.result.undertone.value}**  \n"
                        f"<span class='small-muted'>📅 {when}</span>", unsafe_allow_html=True)
        with c2:
            if st.button("🗑️", key=f"del_{rec.id}"):
                request_confirm(st.session_state, "delete_analysis", rec.id)
                st.rerun()
        with c3:
            if st.button("→", key=f"open_{rec.id}"):
                active = active_record()
                if active is not None and active.id == rec.id:
                    rec = active
                else:
                    rec.result.color_palette = derive_color_harmony(rec.result.undertone, rec.result.eye_color, rec.result.skin_type)
                st.session_state["active_record"] = rec
                st.session_state["research"] = None
                navigate_to(ViewState.GUIDE)


# -----------------------------
# STYLE BOARD
# -----------------------------
def render_add_look():
    step = st.session_state["look_step"]
    if st.button("✕ Close"):
        st.session_state["look_step"] = None
        st.session_state["look_image"] = None
        st.rerun()

    if step == "choose":
        raw = capture_widget("look")
        if raw is not None:
            st.session_state["look_image"] = to_data_url(prepare_capture(raw, mirror=False))
            st.session_state["look_step"] = "form"
            st.rerun()
        if st.button("Skip photo", use_container_width=True):
            st.session_state["look_step"] = "form"
            st.rerun()
        return

    st.markdown("## Save This Look")
    image = st.session_state.get("look_image")
    if image:
        st.image(from_data_url(image)[1], use_container_width=True)
    with st.form("add_look"):
        title = st.text_input("Title *", max_chars=storage.TITLE_MAX, placeholder="e.g., Date Night Glam")
        description = st.text_area("Notes (optional)", max_chars=storage.DESCRIPTION_MAX)
        occasion = st.selectbox("Occasion", storage.OCCASIONS)
        products = st.text_input("Products used (optional)")
        favorite = st.checkbox("❤️ Mark as favorite")
        submitted = st.form_submit_button("Save to Style Board", type="primary", use_container_width=True)

    if submitted:
        try:
            storage.create_look(PB, title, image, description, occasion, products, favorite)
        except StorageError as e:
            st.error(str(e))
            return
        st.session_state["look_step"] = None
        st.session_state["look_image"] = None
        queue_toast(st.session_state, "Look saved to your Style Board!", "success")
        st.rerun()


def render_style_board():
    if st.session_state["look_step"]:
        render_add_look()
        return

    st.markdown("## Style Board")
    st.caption("Save your favorite looks, daily makeup, and inspiration")
    if st.button("＋ Save new look", type="primary", use_container_width=True):
        st.session_state["look_step"] = "choose"
        st.rerun()

    target = confirm_modal("delete_look", "Delete look?", "This will permanently remove this saved look from your style board.")
    if target:
        try:
            storage.delete_look(PB, target)
            queue_toast(st.session_state, "Look deleted", "success")
        except StorageError:
            queue_toast(st.session_state, "Failed to delete look", "error")
        st.rerun()

    looks = storage.list_looks(PB)
    if not looks:
        st.markdown("<div class='card' style='text-align:center;'><b>No Saved Looks Yet</b><br>"
                    "<span class='small-muted'>Snap your makeup each day, save inspiration, track what works.</span></div>",
                    unsafe_allow_html=True)
        return

    cols = st.columns(2)
    for i, look in enumerate(looks):
        with cols[i % 2]:
            with st.container(border=True):
                if look.image_src:
                    st.image(from_data_url(look.image_src)[1], use_container_width=True)
                st.markdown(f"**{look.title}**")
                if look.description:
                    st.caption(look.description)
                st.markdown(pills_html([look.occasion]), unsafe_allow_html=True)
                c1, c2 = st.columns(2)
                with c1:
                    if st.button("❤️" if look.is_favorite else "🤍", key=f"fav_{look.id}"):
                        try:
                            storage.toggle_favorite(PB, look)
                        except StorageError as e:
                            queue_toast(st.session_state, str(e), "error")
                        st.rerun()
                with c2:
                    if st.button("🗑️", key=f"del_look_{look.id}"):
                        request_confirm(st.session_state, "delete_look", look.id)
                        st.rerun()


# -----------------------------
# SIDEBAR / NAV
# -----------------------------
def render_sidebar():
    with st.sidebar:
        user = auth.get_current_user(PB)
        if user:
            st.markdown(f"**{user.name or user.email}**")
            if st.button("Log out", use_container_width=True):
                auth.logout(PB)
                for k in ("active_record", "chat_messages", "chat_record_id", "research"):
                    st.session_state.pop(k, None)
                st.rerun()

        st.markdown("---")
        st.markdown("### 💳 Plan")
        quota = subscriptions.check_analysis_limit(PB)
        if quota.has_limit:
            st.caption(f"{quota.plan_name}: {quota.remaining} of {quota.used + quota.remaining} analyses left")
        else:
            st.caption(f"{quota.plan_name}: unlimited analyses")
        current = subscriptions.get_current_subscription(PB)
        if current is not None and not current.cancel_at_period_end:
            if st.button("Cancel subscription", use_container_width=True):
                if subscriptions.cancel_subscription(PB, current.id):
                    queue_toast(st.session_state, "Subscription will end with this period", "info")
                else:
                    queue_toast(st.session_state, "Failed to cancel subscription", "error")
                st.rerun()
        for plan in subscriptions.PLANS.values():
            st.write(f"**{plan.name}** · {subscriptions.plan_pricing(plan.id)}")
            if plan.id != "free" and current is None:
                if st.button(f"Upgrade to {plan.name}", key=f"plan_{plan.id}", use_container_width=True):
                    try:
                        subscriptions.create_subscription(PB, plan.id)
                        queue_toast(st.session_state, f"Welcome to {plan.name}!", "success")
                    except StorageError as e:
                        queue_toast(st.session_state, str(e), "error")
                    st.rerun()

        st.markdown("---")
        st.markdown("### 🔍 Gemini Debug")
        st.write("HAS_GEMINI =", GEMINI.available)
        st.write("API_KEYS =", len(GEMINI.api_keys))
        st.caption(f"Text model: **{GEMINI.text_model}**")
        st.caption(f"Image model: **{GEMINI.image_model}**")
        err = st.session_state.get("gemini_last_error")
        if err:
            st.error(f"Gemini error: {err}")
        with st.expander("Debug: Gemini raw (first 2k chars)", expanded=False):
            st.code(st.session_state.get("gemini_last_raw", ""), language="json")


NAV_ITEMS = [
    (ViewState.DASHBOARD, "🏠"),
    (ViewState.GUIDE, "📖"),
    (ViewState.CHAT, "💬"),
    (ViewState.GALLERY, "🖼️"),
    (ViewState.STYLE_BOARD, "❤️"),
]


def render_nav():
    st.markdown("<div style='height:12px;'></div>", unsafe_allow_html=True)
    has_analysis = active_record() is not None
    cols = st.columns(len(NAV_ITEMS))
    for col, (view, icon) in zip(cols, NAV_ITEMS):
        with col:
            disabled = view in (ViewState.GUIDE, ViewState.CHAT) and not has_analysis
            if st.button(icon, key=f"nav_{view.value}", use_container_width=True,
                         disabled=disabled or st.session_state["view"] == view):
                navigate_to(view, has_analysis)


# -----------------------------
# MAIN
# -----------------------------
VIEWS = {
    ViewState.DASHBOARD: render_dashboard,
    ViewState.CAMERA: render_camera,
    ViewState.GUIDE: render_guide,
    ViewState.CHAT: render_chat,
    ViewState.GALLERY: render_gallery,
    ViewState.STYLE_BOARD: render_style_board,
}

flush_toasts()

if not auth.is_authenticated(PB):
    render_auth()
elif not st.session_state["onboarding_done"]:
    render_onboarding()
else:
    render_sidebar()
    VIEWS.get(st.session_state["view"], render_dashboard)()
    if st.session_state["view"] != ViewState.CAMERA:
        render_nav()

from facetstudio import ui
from facetstudio.models import AnalysisResult, EyeColor, FaceShape, SkinType, Undertone, ViewState


def test_init_state_keeps_existing_values():
    state = {"view": ViewState.GALLERY}
    ui.init_state(state, {"view": ViewState.DASHBOARD, "messages": []})
    assert state == {"view": ViewState.GALLERY, "messages": []}


def test_chat_without_analysis_routes_to_guide():
    state = {}
    assert ui.set_view(state, ViewState.CHAT, has_analysis=False) is ViewState.GUIDE
    assert state["view"] is ViewState.GUIDE
    assert ui.set_view(state, ViewState.CHAT) is ViewState.CHAT


def test_toasts_survive_until_drained():
    state = {}
    ui.queue_toast(state, "Saved", "success")
    ui.queue_toast(state, "Oops", "error")
    assert ui.drain_toasts(state) == [
        {"message": "Saved", "kind": "success"},
        {"message": "Oops", "kind": "error"},
    ]
    assert ui.drain_toasts(state) == []


def test_confirm_is_scoped_to_action():
    state = {}
    ui.request_confirm(state, "delete_record", "g1")
    assert ui.pending_confirm(state, "delete_record") == "g1"
    assert ui.pending_confirm(state, "delete_look") is None
    ui.clear_confirm(state)
    assert ui.pending_confirm(state, "delete_record") is None


def test_palette_chips_escape_and_label():
    out = ui.palette_chips_html(["#aa0000", "<b>"])
    assert "background:#aa0000" in out
    assert "&lt;b&gt;" in out and "<b>" not in out
    assert ">Soft<" in out and ">Everyday<" in out
    assert ui.palette_chips_html([]) == ""


def test_pills_skip_blanks():
    assert ui.pills_html(["", "  "]) == ""
    assert ui.pills_html(["Matte", "A&B"]).count("class='pill'") == 2
    assert "A&amp;B" in ui.pills_html(["A&B"])


def test_skeleton_rows():
    assert ui.skeleton_html(3, 50).count("height:50px") == 3
    assert ui.skeleton_html(0) == ""


def test_hac_zones_cover_the_face_chart():
    analysis = AnalysisResult(
        FaceShape.HEART, Undertone.WARM, SkinType.DRY, EyeColor.BROWN,
        blush_placement="High on the cheeks.", contour_placement="Temples and under cheekbones.",
    )
    zones = ui.hac_zones(analysis)
    assert [z["title"] for z in zones] == [
        "Contour: Forehead",
        "Brightening Highlight",
        "Brightening Highlight",
        "Lip + Cheek",
        "Contour: Cheekbones",
        "Contour: Jawline",
        "Main Highlight",
    ]
    by_topic = {z["topic"]: z["content"] for z in zones}
    assert by_topic["seint contour forehead"] == "Temples and under cheekbones."
    assert by_topic["seint contour cheekbones"] == "Temples and under cheekbones."
    assert by_topic["seint lip and cheek"] == "High on the cheeks."
    assert by_topic["seint contour jawline"] == "Follow the shadow of your jaw for soft definition."
    assert len(by_topic) == len(zones)


def test_coach_query_names_topic_and_face_shape():
    assert ui.coach_query("seint main highlight", "Heart") == (
        "Can you explain more about seint main highlight for my Heart face shape?"
    )

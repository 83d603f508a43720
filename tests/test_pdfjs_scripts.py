from __future__ import annotations

from varhighlighter.viewer import pdfjs_scripts as scripts


def test_bootstrap_reports_text_layer_selections_over_the_bridge() -> None:
    script = scripts.BOOTSTRAP_SCRIPT
    assert f"channel.objects.{scripts.BRIDGE_OBJECT_NAME}" in script
    assert 'closest(".textLayer")' in script
    assert "onSelectionPopup({windowSelection: text})" in script


def test_match_probe_tries_public_then_private_fields() -> None:
    script = scripts.MATCH_SET_SCRIPT
    assert script.index('"pageMatches"') < script.index('"_pageMatches"')
    assert "_pendingFindMatches" in script


def test_scroll_suppression_is_reversible() -> None:
    assert "window.__varhlScrollStash = stash" in scripts.SUPPRESS_SCROLL_INTO_VIEW_SCRIPT
    assert "window.__varhlScrollStash = null" in scripts.RESTORE_SCROLL_INTO_VIEW_SCRIPT
    assert "scrollMatchIntoView" in scripts.SUPPRESS_SCROLL_INTO_VIEW_SCRIPT


def test_listener_scripts_carry_their_slot_and_token() -> None:
    assert scripts.SCROLL_LISTENER_SLOT in scripts.add_scroll_listener_script("tok")
    assert scripts.OBSERVER_SLOT in scripts.observe_page_script("tok", 3)
    assert scripts.HOVER_SLOT in scripts.add_hover_listener_script("tok")
    assert '"tok", 3' in scripts.observe_page_script("tok", 3)
    assert scripts.remove_listener_script("slot", "tok").endswith('("slot", "tok")')


def test_stylesheet_script_escapes_css() -> None:
    script = scripts.install_stylesheet_script("style-id", 'a { content: "</style>" }')
    assert '"style-id"' in script
    assert '\\"</style>\\"' in script


def test_set_current_page_prefers_application_page() -> None:
    script = scripts.set_current_page_script(12)
    assert script.rstrip().endswith("(12)")
    assert "app.page = pageNumber" in script

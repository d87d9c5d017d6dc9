from types import SimpleNamespace

import pytest

from bunkerdesk.utils.note_formatter import format_note_content
from bunkerdesk.utils.note_sharing import ShareError, can_edit, can_view, check_share_allowed

LIST_OPEN = '<ul class="list-disc list-inside space-y-1 my-2">'


def test_empty_note_renders_nothing():
    assert format_note_content("") == ""
    assert format_note_content(None) == ""


def test_consecutive_bullets_share_one_list():
    html = format_note_content("Stem for Nordic Star\n- 500mt VLSFO\n* 50mt LSMGO\n\nCall back Friday")

    assert html == (
        '<p class="my-1">Stem for Nordic Star</p>'
        f'{LIST_OPEN}<li class="ml-2">500mt VLSFO</li><li class="ml-2">50mt LSMGO</li></ul>'
        "<br/>"
        '<p class="my-1">Call back Friday</p>'
    )


def test_list_at_end_is_closed():
    assert format_note_content("• one").endswith("</li></ul>")


def test_note_text_is_escaped():
    html = format_note_content('<b>price</b> & "terms"\n- <i>x</i>')
    assert "<b>" not in html
    assert '&lt;b&gt;price&lt;/b&gt; &amp; "terms"' in html
    assert "&lt;i&gt;x&lt;/i&gt;" in html


def test_dash_without_space_is_not_a_bullet():
    assert format_note_content("-5 degrees") == '<p class="my-1">-5 degrees</p>'


def note_with_shares(owner_id, *shares):
    return SimpleNamespace(
        user_id=owner_id,
        shares=[SimpleNamespace(shared_with=uid, can_edit=edit) for uid, edit in shares],
    )


def test_view_and_edit_rights_follow_shares():
    note = note_with_shares(1, (2, False), (3, True))

    assert can_view(note, 1) and can_edit(note, 1)
    assert can_view(note, 2) and not can_edit(note, 2)
    assert can_view(note, 3) and can_edit(note, 3)
    assert not can_view(note, 4) and not can_edit(note, 4)


def test_only_owner_may_share_and_not_with_themselves():
    note = note_with_shares(1, (3, True))

    check_share_allowed(note, 1, 2)
    with pytest.raises(ShareError):
        check_share_allowed(note, 3, 2)
    with pytest.raises(ShareError):
        check_share_allowed(note, 1, 1)

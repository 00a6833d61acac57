"""
Section Content State Machine Tests:
  - Lazy row creation is idempotent
  - save: collaborator resets to draft, elevated roles keep status
  - submit / approve / return transition tables
  - Bulk approval per role stage with an honest count
  - Access check order: 404 unknown, 403 out of scope, 404 not required
"""

import pytest

from collab_portal.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_portal.models import db
from collab_portal.models.talking_points import (
    TP_APPROVED_BY_CHAIRMAN,
    TP_APPROVED_BY_SUPERVISOR,
    TP_DRAFT,
    TP_RETURNED,
    TP_SUBMITTED,
    ContentItem,
)
from collab_portal.services import content_workflow as svc


def _item(world, section):
    return ContentItem.query.filter_by(
        event_id=world.event.id, country_id=world.country.id, section_id=section.id,
    ).one()


def _set_status(world, section, status, comment=None):
    item = svc.ensure_content_item(world.event.id, world.country.id, section.id)
    item.status = status
    item.status_comment = comment
    db.session.commit()
    return item


# ═════════════════════════════════════════════════════════════════════════════
# Lazy creation
# ═════════════════════════════════════════════════════════════════════════════


class TestEnsureContentItem:

    def test_creates_draft_row_once(self, world):
        first = svc.ensure_content_item(world.event.id, world.country.id, world.s1.id)
        second = svc.ensure_content_item(world.event.id, world.country.id, world.s1.id)
        db.session.commit()

        assert first.id == second.id
        assert first.status == TP_DRAFT
        assert first.html_content == ""
        assert ContentItem.query.count() == 1

    def test_get_content_includes_display_context(self, world):
        d = svc.get_content(world.collab, world.event.id, world.s1.id)
        assert d["status"] == TP_DRAFT
        assert d["event_title"] == "Freedonia state visit"
        assert d["country_name_en"] == "Freedonia"
        assert d["section_key"] == "politics"
        assert d["section_label"] == "Politics"


# ═════════════════════════════════════════════════════════════════════════════
# Access order
# ═════════════════════════════════════════════════════════════════════════════


class TestAccessOrder:

    def test_unknown_event_is_404(self, world):
        with pytest.raises(NotFoundError):
            svc.get_content(world.collab, 99999, world.s1.id)

    def test_unknown_section_is_404(self, world):
        with pytest.raises(NotFoundError):
            svc.get_content(world.collab, world.event.id, 99999)

    def test_unassigned_section_is_403(self, world):
        with pytest.raises(ForbiddenError):
            svc.get_content(world.collab, world.event.id, world.s2.id)

    def test_foreign_collaborator_is_403(self, world):
        with pytest.raises(ForbiddenError):
            svc.get_content(world.other_collab, world.event.id, world.s3.id)

    def test_not_required_section_is_404_for_elevated(self, world, make_section):
        extra = make_section()
        with pytest.raises(NotFoundError):
            svc.get_content(world.supervisor, world.event.id, extra.id)

    def test_not_required_assigned_section_is_403_for_collaborator(
        self, world, make_section, assign,
    ):
        extra = make_section()
        assign(world.collab, sections=[extra])
        with pytest.raises(ForbiddenError):
            svc.get_content(world.collab, world.event.id, extra.id)

    def test_malformed_id_is_400(self, world):
        with pytest.raises(ValidationError) as exc:
            svc.get_content(world.collab, "abc", world.s1.id)
        assert exc.value.status == 400

    def test_viewer_reads_any_section(self, world):
        d = svc.get_content(world.viewer, world.event.id, world.s2.id)
        assert d["section_id"] == world.s2.id


# ═════════════════════════════════════════════════════════════════════════════
# save
# ═════════════════════════════════════════════════════════════════════════════


class TestSave:

    def test_collaborator_save_resets_approved_section(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_CHAIRMAN)
        item = svc.save_content(world.collab, world.event.id, world.s1.id, "<p>new</p>")
        assert item.status == TP_DRAFT
        assert item.html_content == "<p>new</p>"
        assert item.last_updated_by_user_id == world.collab.id

    def test_collaborator_save_keeps_return_comment(self, world):
        _set_status(world, world.s1, TP_RETURNED, comment="Shorten it")
        item = svc.save_content(world.collab, world.event.id, world.s1.id, "<p>short</p>")
        assert item.status == TP_DRAFT
        assert item.status_comment == "Shorten it"

    def test_elevated_save_keeps_status(self, world):
        _set_status(world, world.s2, TP_APPROVED_BY_SUPERVISOR)
        item = svc.save_content(world.supervisor, world.event.id, world.s2.id, "<p>edit</p>")
        assert item.status == TP_APPROVED_BY_SUPERVISOR
        assert item.html_content == "<p>edit</p>"

    def test_none_body_saves_empty(self, world):
        item = svc.save_content(world.collab, world.event.id, world.s1.id, None)
        assert item.html_content == ""

    @pytest.mark.parametrize("role", ["viewer", "minister", "protocol"])
    def test_read_only_roles_cannot_save(self, world, make_user, role):
        with pytest.raises(ForbiddenError):
            svc.save_content(make_user(role), world.event.id, world.s1.id, "<p>x</p>")

    def test_collaborator_cannot_save_unassigned_section(self, world):
        with pytest.raises(ForbiddenError):
            svc.save_content(world.collab, world.event.id, world.s2.id, "<p>x</p>")
        assert ContentItem.query.count() == 0

    @pytest.mark.parametrize("body", [{"a": 1}, ["<p>x</p>"], 42])
    def test_non_string_body_is_rejected(self, world, body):
        with pytest.raises(ValidationError) as exc:
            svc.save_content(world.collab, world.event.id, world.s1.id, body)
        assert exc.value.status == 400
        assert exc.value.details == {"html_content": "invalid"}
        assert ContentItem.query.count() == 0

    def test_submit_with_non_string_body_keeps_status(self, world):
        _set_status(world, world.s1, TP_DRAFT)
        with pytest.raises(ValidationError):
            svc.submit_content(world.collab, world.event.id, world.s1.id, html_content=7)
        assert _item(world, world.s1).status == TP_DRAFT


# ═════════════════════════════════════════════════════════════════════════════
# submit
# ═════════════════════════════════════════════════════════════════════════════


class TestSubmit:

    @pytest.mark.parametrize("start", [TP_DRAFT, TP_RETURNED])
    def test_submit_from_open_states(self, world, start):
        _set_status(world, world.s1, start, comment="old" if start == TP_RETURNED else None)
        item = svc.submit_content(world.collab, world.event.id, world.s1.id)
        assert item.status == TP_SUBMITTED
        assert item.status_comment is None

    @pytest.mark.parametrize(
        "start", [TP_SUBMITTED, TP_APPROVED_BY_SUPERVISOR, TP_APPROVED_BY_CHAIRMAN],
    )
    def test_submit_outside_open_states_is_rejected(self, world, start):
        _set_status(world, world.s1, start)
        with pytest.raises(ValidationError) as exc:
            svc.submit_content(world.collab, world.event.id, world.s1.id)
        assert exc.value.status == 422
        assert _item(world, world.s1).status == start

    def test_submit_with_body_saves_it(self, world):
        item = svc.submit_content(
            world.collab, world.event.id, world.s1.id, html_content="<p>final</p>",
        )
        assert item.html_content == "<p>final</p>"

    def test_only_collaborators_submit(self, world):
        with pytest.raises(ForbiddenError):
            svc.submit_content(world.supervisor, world.event.id, world.s1.id)


# ═════════════════════════════════════════════════════════════════════════════
# approve
# ═════════════════════════════════════════════════════════════════════════════


class TestApprove:

    def test_supervisor_approves_submitted(self, world):
        _set_status(world, world.s1, TP_SUBMITTED)
        item = svc.approve_section_supervisor(world.supervisor, world.event.id, world.s1.id)
        assert item.status == TP_APPROVED_BY_SUPERVISOR

    def test_supervisor_approval_is_idempotent(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_SUPERVISOR)
        item = svc.approve_section_supervisor(world.supervisor, world.event.id, world.s1.id)
        assert item.status == TP_APPROVED_BY_SUPERVISOR

    def test_supervisor_cannot_downgrade_chairman_approval(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_CHAIRMAN)
        with pytest.raises(ValidationError):
            svc.approve_section_supervisor(world.supervisor, world.event.id, world.s1.id)
        assert _item(world, world.s1).status == TP_APPROVED_BY_CHAIRMAN

    @pytest.mark.parametrize("start", [TP_DRAFT, TP_SUBMITTED, TP_RETURNED,
                                       TP_APPROVED_BY_SUPERVISOR, TP_APPROVED_BY_CHAIRMAN])
    def test_chairman_approves_from_any_state(self, world, start):
        _set_status(world, world.s2, start)
        item = svc.approve_section_chairman(world.chairman, world.event.id, world.s2.id)
        assert item.status == TP_APPROVED_BY_CHAIRMAN

    def test_approval_clears_return_comment(self, world):
        _set_status(world, world.s2, TP_RETURNED, comment="fix")
        item = svc.approve_section_chairman(world.admin, world.event.id, world.s2.id)
        assert item.status_comment is None

    def test_supervisor_cannot_give_chairman_approval(self, world):
        with pytest.raises(ForbiddenError):
            svc.approve_section_chairman(world.supervisor, world.event.id, world.s1.id)

    def test_collaborator_cannot_approve(self, world):
        with pytest.raises(ForbiddenError):
            svc.approve_section_supervisor(world.collab, world.event.id, world.s1.id)


# ═════════════════════════════════════════════════════════════════════════════
# return
# ═════════════════════════════════════════════════════════════════════════════


class TestReturn:

    def test_return_stores_stripped_comment(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_CHAIRMAN)
        item = svc.return_content(world.chairman, world.event.id, world.s1.id, "  needs data  ")
        assert item.status == TP_RETURNED
        assert item.status_comment == "needs data"

    @pytest.mark.parametrize("comment", [None, "", "   "])
    def test_return_requires_comment(self, world, comment):
        _set_status(world, world.s1, TP_SUBMITTED)
        with pytest.raises(ValidationError):
            svc.return_content(world.supervisor, world.event.id, world.s1.id, comment)
        assert _item(world, world.s1).status == TP_SUBMITTED

    @pytest.mark.parametrize("comment", [123, ["x"], {"text": "x"}])
    def test_non_string_comment_is_400(self, world, comment):
        _set_status(world, world.s1, TP_SUBMITTED)
        with pytest.raises(ValidationError) as exc:
            svc.return_content(world.supervisor, world.event.id, world.s1.id, comment)
        assert exc.value.status == 400
        assert _item(world, world.s1).status == TP_SUBMITTED

    def test_collaborator_cannot_return(self, world):
        with pytest.raises(ForbiddenError):
            svc.return_content(world.collab, world.event.id, world.s1.id, "no")


# ═════════════════════════════════════════════════════════════════════════════
# approve all
# ═════════════════════════════════════════════════════════════════════════════


class TestApproveAll:

    def test_supervisor_approves_first_stage(self, world):
        _set_status(world, world.s1, TP_SUBMITTED)
        _set_status(world, world.s2, TP_APPROVED_BY_CHAIRMAN)

        result = svc.approve_all_sections(world.supervisor, world.event.id)

        # s1 and s3 move; s2 is past the supervisor stage
        assert result == {"ok": True, "updated": 2}
        assert _item(world, world.s1).status == TP_APPROVED_BY_SUPERVISOR
        assert _item(world, world.s2).status == TP_APPROVED_BY_CHAIRMAN
        assert _item(world, world.s3).status == TP_APPROVED_BY_SUPERVISOR

    def test_chairman_approves_final_stage(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_CHAIRMAN)
        result = svc.approve_all_sections(world.chairman, world.event.id)
        assert result["updated"] == 2
        for section in (world.s1, world.s2, world.s3):
            assert _item(world, section).status == TP_APPROVED_BY_CHAIRMAN

    def test_second_run_updates_nothing(self, world):
        svc.approve_all_sections(world.admin, world.event.id)
        assert svc.approve_all_sections(world.admin, world.event.id)["updated"] == 0

    def test_admin_uses_first_stage(self, world):
        svc.approve_all_sections(world.admin, world.event.id)
        assert _item(world, world.s1).status == TP_APPROVED_BY_SUPERVISOR

    def test_collaborator_forbidden(self, world):
        with pytest.raises(ForbiddenError):
            svc.approve_all_sections(world.collab, world.event.id)

    def test_unknown_event(self, world):
        with pytest.raises(NotFoundError):
            svc.approve_all_sections(world.admin, 424242)


# ═════════════════════════════════════════════════════════════════════════════
# status grid
# ═════════════════════════════════════════════════════════════════════════════


class TestStatusGrid:

    def test_grid_in_document_order(self, world, make_section, make_event):
        late = make_section(order_index=5)
        event = make_event(world.country, [world.s3, late, world.s1])
        grid = svc.get_status_grid(world.viewer, event.id)
        assert [row["section_id"] for row in grid] == [late.id, world.s1.id, world.s3.id]
        assert all(row["status"] == TP_DRAFT for row in grid)

    def test_grid_reflects_status(self, world):
        _set_status(world, world.s2, TP_RETURNED, comment="why")
        grid = {row["section_id"]: row for row in svc.get_status_grid(world.collab, world.event.id)}
        assert grid[world.s2.id]["status"] == TP_RETURNED
        assert grid[world.s2.id]["status_comment"] == "why"

    def test_grid_forbidden_for_foreign_collaborator(self, world):
        with pytest.raises(ForbiddenError):
            svc.get_status_grid(world.other_collab, world.event.id)

    def test_explicit_country_out_of_scope(self, world):
        with pytest.raises(ForbiddenError):
            svc.get_status_grid(world.collab, world.event.id, world.elsewhere.id)

    def test_other_country_document_is_separate(self, world):
        _set_status(world, world.s1, TP_APPROVED_BY_CHAIRMAN)
        grid = svc.get_status_grid(world.admin, world.event.id, world.elsewhere.id)
        assert all(row["status"] == TP_DRAFT for row in grid)

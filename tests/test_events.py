"""
Event Catalog Tests: service rules and the /api/v1/events endpoints.
"""

from datetime import date

import pytest

from collab_portal.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_portal.models import db
from collab_portal.models.event import Event
from collab_portal.services import event_service as svc


class TestCreateEvent:

    def test_create_with_required_sections(self, world):
        event = svc.create_event(world.protocol, {
            "title": "  Summit  ",
            "country_id": world.country.id,
            "deadline_date": "15.03.2027",
            "required_section_ids": [world.s2.id, world.s1.id, world.s2.id],
        })
        assert event.title == "Summit"
        assert event.deadline_date == date(2027, 3, 15)
        assert event.required_section_ids == {world.s1.id, world.s2.id}
        assert event.created_by_user_id == world.protocol.id

    def test_requires_at_least_one_section(self, world):
        with pytest.raises(ValidationError):
            svc.create_event(world.admin, {
                "title": "Empty", "country_id": world.country.id, "required_section_ids": [],
            })

    def test_unknown_section(self, world):
        with pytest.raises(NotFoundError):
            svc.create_event(world.admin, {
                "title": "Bad", "country_id": world.country.id, "required_section_ids": [9999],
            })

    def test_inactive_section_cannot_be_required(self, world, make_section):
        retired = make_section(is_active=False)
        with pytest.raises(ValidationError):
            svc.create_event(world.admin, {
                "title": "Old", "country_id": world.country.id,
                "required_section_ids": [retired.id],
            })

    def test_bad_deadline(self, world):
        with pytest.raises(ValidationError) as exc:
            svc.create_event(world.admin, {
                "title": "X", "country_id": world.country.id,
                "required_section_ids": [world.s1.id], "deadline_date": "next week",
            })
        assert exc.value.status == 400

    @pytest.mark.parametrize("role", ["collaborator", "super_collaborator", "viewer"])
    def test_forbidden_roles(self, world, make_user, role):
        with pytest.raises(ForbiddenError):
            svc.create_event(make_user(role), {
                "title": "X", "country_id": world.country.id,
                "required_section_ids": [world.s1.id],
            })


class TestUpdateAndEnd:

    def test_replace_required_sections(self, world):
        event = svc.update_event(world.supervisor, world.event.id, {
            "required_section_ids": [world.s3.id],
        })
        assert event.required_section_ids == {world.s3.id}

    def test_existing_inactive_section_may_stay_required(self, world):
        world.s2.is_active = False
        event = svc.update_event(world.admin, world.event.id, {
            "required_section_ids": [world.s1.id, world.s2.id],
        })
        assert event.required_section_ids == {world.s1.id, world.s2.id}

    def test_move_to_inactive_country_rejected(self, world, make_country):
        retired = make_country(is_active=False)
        with pytest.raises(ValidationError) as exc:
            svc.update_event(world.admin, world.event.id, {"country_id": retired.id})
        assert exc.value.details == {"country_id": "inactive"}
        assert db.session.get(Event, world.event.id).country_id == world.country.id

    def test_event_may_keep_its_retired_country(self, world):
        world.country.is_active = False
        event = svc.update_event(world.admin, world.event.id, {
            "country_id": world.country.id, "title": "Renamed",
        })
        assert event.country_id == world.country.id
        assert event.title == "Renamed"

    @pytest.mark.parametrize("flag", ["false", "0", False])
    def test_is_active_parsed_strictly(self, world, flag):
        event = svc.update_event(world.admin, world.event.id, {"is_active": flag})
        assert event.is_active is False

    def test_is_active_garbage_is_400(self, world):
        with pytest.raises(ValidationError) as exc:
            svc.update_event(world.admin, world.event.id, {"is_active": "sometimes"})
        assert exc.value.status == 400

    def test_empty_title_rejected(self, world):
        with pytest.raises(ValidationError):
            svc.update_event(world.admin, world.event.id, {"title": "  "})

    def test_end_event_is_one_way(self, world):
        event = svc.end_event(world.protocol, world.event.id)
        assert event.is_ended
        assert event.ended_by_user_id == world.protocol.id
        with pytest.raises(ValidationError):
            svc.end_event(world.admin, world.event.id)

    def test_minister_cannot_end(self, world):
        with pytest.raises(ForbiddenError):
            svc.end_event(world.minister, world.event.id)


class TestVisibility:

    def test_upcoming_order_and_filters(self, world, make_event):
        make_event(world.country, [world.s1], title="Later", deadline_date=date(2027, 6, 1))
        make_event(world.country, [world.s1], title="Sooner", deadline_date=date(2027, 1, 1))
        make_event(world.country, [world.s1], title="Off", is_active=False)
        ended = make_event(world.country, [world.s1], title="Done")
        svc.end_event(world.admin, ended.id)

        titles = [e.title for e in svc.list_upcoming_events(world.collab)]
        # No deadline sorts last
        assert titles == ["Sooner", "Later", "Freedonia state visit"]

    def test_collaborator_without_scope_sees_nothing(self, make_user):
        assert svc.list_upcoming_events(make_user("collaborator")) == []
        assert svc.list_visible_events(make_user("collaborator")) == []

    def test_detail_forbidden_when_hidden(self, world):
        with pytest.raises(ForbiddenError):
            svc.get_event_detail(world.other_collab, world.event.id)

    def test_detail_lists_sections_in_order(self, world):
        detail = svc.get_event_detail(world.collab, world.event.id)
        assert [s["key"] for s in detail["required_sections"]] == ["politics", "economy", "culture"]

    def test_filter_by_active_and_country(self, world, make_event):
        make_event(world.elsewhere, [world.s1], title="Abroad")
        titles = {e.title for e in svc.list_visible_events(world.admin, country_id=world.elsewhere.id)}
        assert titles == {"Abroad"}
        assert svc.list_visible_events(world.admin, is_active=False) == []


class TestEventApi:

    def test_create_via_api_accepts_camel_case(self, client, world, auth_headers):
        res = client.post("/api/v1/events", headers=auth_headers(world.chairman), json={
            "title": "Trade mission",
            "countryId": world.country.id,
            "deadlineDate": "2027-02-01",
            "requiredSectionIds": [world.s1.id],
        })
        assert res.status_code == 201
        body = res.get_json()
        assert body["deadline_date"] == "2027-02-01"
        assert [s["id"] for s in body["required_sections"]] == [world.s1.id]

    def test_hidden_event_is_403(self, client, world, auth_headers):
        res = client.get(f"/api/v1/events/{world.event.id}", headers=auth_headers(world.other_collab))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_unknown_event_is_404(self, client, world, auth_headers):
        res = client.get("/api/v1/events/99999", headers=auth_headers(world.admin))
        assert res.status_code == 404

    def test_upcoming_for_me_alias(self, client, world, auth_headers):
        res = client.get("/api/v1/events/upcoming-for-me", headers=auth_headers(world.collab))
        assert res.status_code == 200
        assert [e["id"] for e in res.get_json()["items"]] == [world.event.id]

    def test_end_via_api(self, client, world, auth_headers):
        res = client.post(f"/api/v1/events/{world.event.id}/end", headers=auth_headers(world.supervisor))
        assert res.status_code == 200
        assert res.get_json()["event"]["ended_at"] is not None

    def test_validation_error_shape(self, client, world, auth_headers):
        res = client.post("/api/v1/events", headers=auth_headers(world.admin), json={
            "title": "", "country_id": world.country.id, "required_section_ids": [world.s1.id],
        })
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"] == {"title": "required"}

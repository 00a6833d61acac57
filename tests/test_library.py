"""
Library Tests: approved-document listing and document assembly.
"""

import pytest

from collab_portal.core.exceptions import ForbiddenError
from collab_portal.services import document_workflow, library_service
from collab_portal.services.content_workflow import save_content


class TestListLibrary:

    def test_only_approved_documents(self, world, make_event):
        other = make_event(world.country, [world.s1], title="Not yet")
        document_workflow.approve_document(world.chairman, world.event.id)
        document_workflow.submit_to_supervisor(world.collab, other.id)

        items = library_service.list_library(world.supervisor, world.country.id)
        assert [i["event_id"] for i in items] == [world.event.id]
        assert items[0]["title"] == "Freedonia state visit"
        assert items[0]["last_updated"] is not None

    def test_scoped_by_country(self, world):
        document_workflow.approve_document(world.admin, world.event.id, world.elsewhere.id)
        assert library_service.list_library(world.admin, world.country.id) == []
        items = library_service.list_library(world.admin, world.elsewhere.id)
        assert [i["country_id"] for i in items] == [world.elsewhere.id]

    def test_most_recent_first(self, world, make_event):
        first = make_event(world.country, [world.s1], title="First")
        second = make_event(world.country, [world.s1], title="Second")
        document_workflow.approve_document(world.chairman, first.id)
        document_workflow.approve_document(world.chairman, second.id)
        titles = [i["title"] for i in library_service.list_library(world.minister, world.country.id)]
        assert titles == ["Second", "First"]

    def test_super_collaborator_limited_to_scope(self, world, make_user, assign):
        document_workflow.approve_document(world.chairman, world.event.id)
        scoped = assign(make_user("super_collaborator"), sections=[world.s2],
                        countries=[world.elsewhere])
        assert library_service.list_library(scoped, world.country.id) == []

    @pytest.mark.parametrize("role", ["collaborator", "viewer"])
    def test_roles_without_library(self, world, make_user, role):
        with pytest.raises(ForbiddenError):
            library_service.list_library(make_user(role), world.country.id)


class TestLibraryDocument:

    def test_sections_ordered_by_order_index_then_id(self, world, make_section, make_event):
        tied_a = make_section(order_index=15)
        tied_b = make_section(order_index=15)
        event = make_event(world.country, [tied_b, world.s2, tied_a, world.s1])

        doc = library_service.get_library_document(world.protocol, event.id)

        assert [s["section_id"] for s in doc["sections"]] == [
            world.s1.id, tied_a.id, tied_b.id, world.s2.id,
        ]
        assert doc["document_status"]["status"] == "in_progress"
        assert doc["country"]["code"] == "FRE"
        assert doc["event"]["id"] == event.id

    def test_document_carries_content(self, world):
        save_content(world.collab, world.event.id, world.s1.id, "<h2>Opening</h2>")
        document_workflow.approve_document(world.chairman, world.event.id)

        doc = library_service.get_library_document(world.chairman, world.event.id)
        by_id = {s["section_id"]: s for s in doc["sections"]}
        assert by_id[world.s1.id]["html_content"] == "<h2>Opening</h2>"
        assert by_id[world.s1.id]["status"] == "approved_by_chairman"
        assert by_id[world.s3.id]["html_content"] == ""
        assert doc["document_status"]["status"] == "approved"

    def test_api_round_trip(self, client, world, auth_headers):
        document_workflow.approve_document(world.chairman, world.event.id)
        headers = auth_headers(world.supervisor)

        listing = client.get(f"/api/v1/library?countryId={world.country.id}", headers=headers)
        assert listing.status_code == 200
        assert [i["event_id"] for i in listing.get_json()["items"]] == [world.event.id]

        doc = client.get(f"/api/v1/library/document?event_id={world.event.id}", headers=headers)
        assert doc.status_code == 200
        assert len(doc.get_json()["sections"]) == 3

    def test_api_forbidden_for_viewer(self, client, world, auth_headers):
        res = client.get(
            f"/api/v1/library?country_id={world.country.id}", headers=auth_headers(world.viewer),
        )
        assert res.status_code == 403

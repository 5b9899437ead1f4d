"""
API tests for browsing events and add-on services.
"""

from datetime import date, timedelta

API = "/api/v1"


class TestEvents:
    def test_list_is_public_and_ordered(self, client, make_event):
        today = date.today()
        make_event(title="Later", event_date=today + timedelta(days=20))
        make_event(title="Sooner", event_date=today + timedelta(days=2))
        make_event(title="Undated")
        make_event(title="Past", event_date=today - timedelta(days=1))

        resp = client.get(f"{API}/events")

        assert resp.status_code == 200
        assert [e["title"] for e in resp.json()] == ["Sooner", "Later", "Undated"]

    def test_filter_by_type(self, client, make_event):
        make_event(title="Wedding Fair", type="wedding")
        make_event(title="Dev Summit", type="conference")

        titles = [e["title"] for e in client.get(f"{API}/events", params={"type": "wedding"}).json()]
        assert titles == ["Wedding Fair"]
        assert len(client.get(f"{API}/events", params={"type": "all"}).json()) == 2

    def test_search_matches_title_description_and_location(self, client, make_event):
        make_event(title="Jazz Evening")
        make_event(title="Gala", description="Live jazz band")
        make_event(title="Quiz", location="Jazz Cafe")
        make_event(title="Bake Off")

        resp = client.get(f"{API}/events", params={"search": "jazz"})

        assert sorted(e["title"] for e in resp.json()) == ["Gala", "Jazz Evening", "Quiz"]

    def test_details_include_services(self, client, make_event, make_service):
        event = make_event("100.00", type="wedding", capacity=80)
        make_service("20.00", name="Catering", service_id=1)
        make_service("30.00", name="Photography", service_id=2)

        resp = client.get(f"{API}/events/{event.id}")

        assert resp.status_code == 200
        body = resp.json()
        assert body["event"]["title"] == "Gala Night"
        assert body["event"]["capacity"] == 80
        assert body["event"]["status"] == "active"
        assert [s["id"] for s in body["services"]] == [1, 2]

    def test_unknown_event(self, client):
        resp = client.get(f"{API}/events/4242")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Event not found"


class TestServices:
    def test_list_and_filter_by_category(self, client, make_service):
        make_service("20.00", name="Catering", category="food")
        make_service("30.00", name="Photography", category="media")

        everything = client.get(f"{API}/services").json()
        assert sorted(s["name"] for s in everything) == ["Catering", "Photography"]

        food = client.get(f"{API}/services", params={"category": "food"}).json()
        assert [s["name"] for s in food] == ["Catering"]
        assert float(food[0]["price"]) == 20.0

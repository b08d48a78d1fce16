import httpx
import pytest

from company_search.app import create_app
from company_search.dispatcher import EMPTY_QUERY_ADVICE
from tests.helpers import GEOCODE_HOST, REGISTRY_HOST, registry_subject


class Upstream:
    """Records every request the app makes and answers with `respond`."""

    def __init__(self, respond=None):
        self.requests = []
        self.respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.respond is None:
            raise AssertionError(f"unexpected request to {request.url}")
        return self.respond(request)


def make_test_client(settings, upstream):
    app = create_app(settings, transport=httpx.MockTransport(upstream))
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def upstream():
    return Upstream()


def test_health(settings, upstream):
    resp = make_test_client(settings, upstream).get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "healthy"}


def test_empty_search_returns_advisory_without_upstream_calls(settings, upstream):
    client = make_test_client(settings, upstream)

    for kwargs in ({"json": {}}, {"data": ""}):
        resp = client.post("/search", **kwargs)
        assert resp.status_code == 200
        assert resp.get_json() == {"data": [], "error": EMPTY_QUERY_ADVICE}

    assert upstream.requests == []


def test_search_returns_entities_in_wire_shape(settings):
    def respond(request):
        if request.url.host == REGISTRY_HOST:
            return httpx.Response(200, json=registry_subject("12345678", "Alfa Software s.r.o.", ["62010"]))
        return httpx.Response(404)

    settings["enrichment"]["enabled"] = False
    resp = make_test_client(settings, Upstream(respond)).post("/search", json={"keyword": "12345678"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert "error" not in body
    assert body["data"] == [{
        "id": "12345678",
        "name": "Alfa Software s.r.o.",
        "registryId": "12345678",
        "location": {"city": "Praha", "street": "Václavské náměstí 846/1", "postalCode": "110 00"},
        "employeeCountBand": "",
        "sector": "IT",
        "contact": {"email": "", "phone": "", "website": ""},
        "socialLinks": {},
    }]


def test_search_response_keeps_czech_characters_readable(settings):
    settings["source_strategy"] = "mock"
    resp = make_test_client(settings, Upstream()).post("/search", json={"keyword": "TechNova"})
    assert "Václavské náměstí".encode("utf-8") in resp.data


@pytest.mark.parametrize("payload", [
    {"sector": "Agriculture"},
    {"keyword": ["a", "b"]},
])
def test_invalid_search_parameters_are_rejected(settings, upstream, payload):
    resp = make_test_client(settings, upstream).post("/search", json=payload)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["data"] == []
    assert body["error"].startswith("Invalid search parameters")
    assert upstream.requests == []


def test_non_object_body_is_rejected(settings, upstream):
    resp = make_test_client(settings, upstream).post("/search", json=["Praha"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Request body must be a JSON object"


def test_unexpected_failure_maps_to_500(settings, upstream):
    settings["source_strategy"] = "no-such-strategy"
    resp = make_test_client(settings, upstream).post("/search", json={"keyword": "Alfa"})
    assert resp.status_code == 500
    assert resp.get_json() == {"data": [], "error": "Failed to process search request"}


def test_geocode_rejects_non_numeric_coordinates(settings, upstream):
    resp = make_test_client(settings, upstream).get("/geocode?lat=abc&lon=14.42")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid coordinates"}
    assert upstream.requests == []


@pytest.mark.parametrize("query", ["/geocode", "/geocode?lat=50.08", "/geocode?lat=&lon=14.42"])
def test_geocode_requires_both_coordinates(settings, upstream, query):
    resp = make_test_client(settings, upstream).get(query)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "lat and lon are required"}


def test_geocode_passes_upstream_payload_through(settings):
    payload = {"display_name": "Václavské náměstí, Praha", "address": {"city": "Praha", "postcode": "110 00"}}
    upstream = Upstream(lambda request: httpx.Response(200, json=payload))

    resp = make_test_client(settings, upstream).get("/geocode?lat=50.0815&lon=14.4266")

    assert resp.status_code == 200
    assert resp.get_json() == payload
    sent = upstream.requests[0]
    assert sent.url.host == GEOCODE_HOST
    assert sent.url.params["lat"] == "50.0815"
    assert sent.url.params["format"] == "json"
    assert sent.url.params["accept-language"] == "cs"
    assert sent.headers["User-Agent"] == "company-search-app/1.0"


def test_geocode_forwards_upstream_error_status(settings):
    upstream = Upstream(lambda request: httpx.Response(503, text="overloaded"))
    resp = make_test_client(settings, upstream).get("/geocode?lat=50&lon=14")
    assert resp.status_code == 503
    assert resp.get_json() == {"error": "Nominatim returned an error"}


def test_geocode_transport_failure_maps_to_500(settings):
    def respond(request):
        raise httpx.ConnectError("unreachable", request=request)

    resp = make_test_client(settings, Upstream(respond)).get("/geocode?lat=50&lon=14")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Geocoding failed"}

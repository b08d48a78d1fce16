"""
Company Search Service
Provides a REST API that aggregates company records from registry and directory sources
"""
import httpx
from flask import Flask, request, jsonify
from pydantic import ValidationError

from .dispatcher import Dispatcher
from .errors import InvalidRequest, MalformedUpstreamPayload, UpstreamRejected, UpstreamUnavailable
from .geocode import reverse_geocode
from .models import Query
from .utils import load_settings, logger, section

SEARCH_FAILED = "Failed to process search request"


def _validation_message(exc: ValidationError) -> str:
    fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
    if fields:
        return f"Invalid search parameters: {', '.join(fields)}"
    return "Invalid search parameters"


def parse_query(raw_body: bytes, data) -> Query:
    """An empty body counts as an empty query; anything else must be a JSON object."""
    if not raw_body.strip():
        data = {}
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        return Query.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequest(_validation_message(exc)) from exc


def create_app(settings: dict = None, transport: httpx.AsyncBaseTransport = None) -> Flask:
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.config["SETTINGS"] = load_settings() if settings is None else settings
    app.config["HTTP_TRANSPORT"] = transport

    def http_client() -> httpx.AsyncClient:
        # One client per request; nothing is shared between queries.
        return httpx.AsyncClient(transport=app.config["HTTP_TRANSPORT"], follow_redirects=True)

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint"""
        return jsonify({"status": "healthy"})

    @app.route('/search', methods=['POST'])
    async def search():
        """
        Search companies

        Request body (all optional):
        {
            "keyword": "TechNova" or "12345678",
            "location": "Praha",
            "sector": "IT",
            "employeeCountBand": "11-50"
        }

        Response:
        {
            "data": [ {...entity...} ],
            "error": "advisory text, only when data is empty"
        }
        """
        try:
            query = parse_query(request.get_data(), request.get_json(silent=True))
        except InvalidRequest as exc:
            return jsonify({"data": [], "error": str(exc)}), 400

        try:
            async with http_client() as client:
                dispatcher = Dispatcher.from_settings(app.config["SETTINGS"], client=client)
                result = await dispatcher.search(query)
        except Exception as e:
            logger.exception(f"Search failed: {e}")
            return jsonify({"data": [], "error": SEARCH_FAILED}), 500

        return jsonify(result.to_json())

    @app.route('/geocode', methods=['GET'])
    async def geocode():
        """Reverse geocoding proxy: /geocode?lat=<number>&lon=<number>"""
        cfg = section(app.config["SETTINGS"], "geocode")
        options = {k: cfg[k] for k in ("base_url", "timeout", "user_agent", "language") if k in cfg}
        try:
            async with http_client() as client:
                payload = await reverse_geocode(
                    request.args.get('lat'), request.args.get('lon'), client=client, **options
                )
        except InvalidRequest as exc:
            return jsonify({"error": str(exc)}), 400
        except UpstreamRejected as exc:
            logger.warning(f"Geocoding rejected: HTTP {exc.status_code}")
            return jsonify({"error": "Nominatim returned an error"}), exc.status_code or 502
        except (UpstreamUnavailable, MalformedUpstreamPayload) as exc:
            logger.warning(f"Geocoding failed: {exc}")
            return jsonify({"error": "Geocoding failed"}), 500

        return jsonify(payload)

    return app

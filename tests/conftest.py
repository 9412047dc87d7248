import asyncio
import io
import json
from pathlib import Path

import pytest
from aiohttp import test_utils, web

from src.indx_loader.clients.exceptions import IndxApiError
from src.indx_loader.clients.indx_client import ClientSettings, IndxClient
from src.indx_loader.schemas.indx_schemas import (
    BoostProxy,
    FilterProxy,
    Result,
    SearchRecord,
    SystemState,
    SystemStatus,
)
from src.utils.console import ConsoleHelper


class FakeIndxClient:
    """
    In-memory stand-in for IndxClient.

    ``failures`` maps a call name (e.g. "create_or_open", "set_fields:Facetable")
    to the exception it should raise. ``states`` is the sequence of system states
    returned by get_status; the last one repeats.
    """

    base_url = "https://indx.example.test/"

    def __init__(self, states=None, failures=None, search_result=None, record_count=10000):
        self.calls = []
        self.payloads = {}
        self.states = list(states or [SystemState.Loaded, SystemState.Ready])
        self.failures = dict(failures or {})
        self.search_result = search_result if search_result is not None else Result(
            records=[SearchRecord(document_key=7, score=98.5), SearchRecord(document_key=42, score=71.25)]
        )
        self.record_count = record_count
        self._filter_ids = 0

    def _call(self, name, payload=None):
        self.calls.append(name)
        self.payloads.setdefault(name, []).append(payload)
        if name in self.failures:
            raise self.failures[name]

    def names(self):
        return list(self.calls)

    def count(self, name):
        return self.calls.count(name)

    def _next_filter(self, field_name):
        self._filter_ids += 1
        return FilterProxy(id=f"f{self._filter_ids}", field_name=field_name)

    async def create_or_open(self, name):
        self._call("create_or_open", name)

    async def delete_dataset(self, name):
        self._call("delete_dataset", name)

    async def analyze_string(self, name, content):
        self._call("analyze_string", content)
        return SystemStatus(system_state=SystemState.Created)

    async def get_all_fields(self, name):
        self._call("get_all_fields")
        return ["title", "description"]

    async def set_searchable_fields(self, name, fields):
        self._call("set_searchable_fields", [f.to_wire() for f in fields])

    async def set_fields(self, category, name, fields):
        self._call(f"set_fields:{category}", list(fields))

    async def get_fields(self, category, name):
        self._call(f"get_fields:{category}")
        return []

    async def create_range_filter(self, name, range_filter):
        self._call("create_range_filter", range_filter)
        return self._next_filter(range_filter.field_name)

    async def create_value_filter(self, name, value_filter):
        self._call("create_value_filter", value_filter)
        return self._next_filter(value_filter.field_name)

    async def combine_filters(self, name, combined):
        self._call("combine_filters", combined)
        return self._next_filter(combined.filter1.field_name)

    async def create_boost(self, name, boost):
        self._call("create_boost", boost)
        return BoostProxy(filter_proxy=boost.filter_proxy, boost_strength=boost.boost_strength)

    async def load_stream(self, name, file_path):
        self._call("load_stream", file_path)

    async def load_from_database(self, name):
        self._call("load_from_database")

    async def get_status(self, name):
        self._call("get_status")
        state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        return SystemStatus(
            system_state=state,
            error_message="index build crashed" if state == SystemState.Error else None,
        )

    async def get_number_of_json_records(self, name):
        self._call("get_number_of_json_records")
        return self.record_count

    async def index_dataset(self, name):
        self._call("index_dataset")

    async def search(self, name, query):
        self._call("search", query)
        return self.search_result

    async def get_json(self, name, keys):
        self._call("get_json", list(keys))
        return [json.dumps({"key": keys[0]})]


@pytest.fixture
def fake_client_cls():
    return FakeIndxClient


@pytest.fixture
def api_error():
    def _make(status=500, body="boom"):
        return IndxApiError(status, "https://indx.example.test/api/x", body)
    return _make


@pytest.fixture
def console_output():
    return io.StringIO()


@pytest.fixture
def quiet_console(console_output):
    return ConsoleHelper(stream=console_output, color=False)


@pytest.fixture
def dataset_files(tmp_path, monkeypatch):
    """Run inside a temp dir holding small data/tmdb_top10k.json and data/pokedex.json."""
    data_dir = Path(tmp_path) / "data"
    data_dir.mkdir()
    (data_dir / "tmdb_top10k.json").write_text(
        json.dumps([{"title": "Titanic", "popularity": 99.1}, {"title": "Alien", "popularity": 50.2}]),
        encoding="utf-8",
    )
    (data_dir / "pokedex.json").write_text(
        json.dumps([{"name": "Raichu", "type1": "electric", "speed": 110}, {"name": "Pichu", "speed": 60}]),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    return data_dir


class RecordingApi:
    """Catch-all /api handler that records requests and replays canned responses."""

    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "headers": dict(request.headers),
            "body": body,
        })
        status, payload = self.responses.get((request.method, request.path), (200, ""))
        if isinstance(payload, (dict, list, int, float)):
            return web.json_response(payload, status=status)
        return web.Response(text=payload, status=status)

    def last(self):
        return self.requests[-1]

    def paths(self):
        return [request["path"] for request in self.requests]


def with_client(api: RecordingApi, scenario):
    """Serve ``api`` in-process and run ``scenario(client)`` against a real IndxClient."""
    async def _run():
        app = web.Application()
        app.router.add_route("*", "/api/{tail:.*}", api.handle)
        async with test_utils.TestServer(app) as server:
            settings = ClientSettings(base_url=str(server.make_url("/")), bearer_token="secret-token")
            async with IndxClient(settings) as client:
                return await scenario(client)
    return asyncio.run(_run())


@pytest.fixture
def recording_api():
    return RecordingApi


@pytest.fixture
def serve():
    return with_client

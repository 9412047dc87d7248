# src/indx_loader/clients/indx_client.py
import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError

from ..config.dataset_config import SearchableField
from ..schemas.indx_schemas import (
    BoostProxy,
    CloudQuery,
    CombinedFilterProxy,
    FilterProxy,
    RangeFilterProxy,
    Result,
    SystemStatus,
    ValueFilterProxy,
)
from .exceptions import IndxApiError, IndxConnectionError, IndxError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

API_ROUTE = "api"

# Field categories in the order the loader configures them
FIELD_CATEGORIES = ("Searchable", "Filterable", "Facetable", "Sortable", "WordIndexing")


@dataclass(frozen=True)
class ClientSettings:
    """Connection settings, fixed for the whole run."""
    base_url: str
    bearer_token: str
    verify_ssl: bool = True
    timeout_seconds: Optional[float] = 300.0

    @classmethod
    def from_config(cls, config: dict, bearer_token: str) -> "ClientSettings":
        return cls(
            base_url=config['api']['uri'],
            bearer_token=bearer_token,
            verify_ssl=config['api']['verify_ssl'],
            timeout_seconds=config['http']['timeout_seconds'],
        )


class IndxClient:
    """
    Async HTTP client for IndxCloudApi:
      - one aiohttp session per client, Bearer auth header set once
      - every endpoint raises IndxConnectionError / IndxApiError on failure
      - file uploads are streamed with an explicit Content-Length
    """

    def __init__(self, settings: ClientSettings):
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/") + "/"
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "IndxClient":
        await self.get_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------------- Session ----------------
    async def get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {
                "Accept": "application/json",
                "Authorization": f"Bearer {self.settings.bearer_token}",
            }
            timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
            # ssl=False only ever comes from a loopback base URL (see env_utils)
            connector = aiohttp.TCPConnector(ssl=None if self.settings.verify_ssl else False)
            self._session = aiohttp.ClientSession(headers=headers, timeout=timeout, connector=connector)
            if not self.settings.verify_ssl:
                logger.warning(f"⚠️ TLS certificate validation disabled for {self.base_url}")
            logger.debug(f"🔗 Created session for {self.base_url}")
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("🔒 IndxClient session closed.")
        self._session = None

    # ---------------- Low level ----------------
    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{API_ROUTE}/{endpoint.lstrip('/')}"

    async def _send(self, method: str, endpoint: str, **kwargs) -> str:
        url = self.url_for(endpoint)
        session = await self.get_session()
        try:
            async with session.request(method, url, **kwargs) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    logger.error(f"{method} {url} failed with HTTP {resp.status}: {text[:300]}")
                    raise IndxApiError(resp.status, url, text)
                return text
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"{method} {url} failed: {e!r}")
            raise IndxConnectionError(f"Cannot reach {url}: {e!r}", url=url) from e

    async def _send_json(self, method: str, endpoint: str, **kwargs) -> Any:
        text = await self._send(method, endpoint, **kwargs)
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            url = self.url_for(endpoint)
            logger.error(f"Non-JSON response for {url}: {text[:200]}")
            raise IndxError(f"Non-JSON response from {url}", url=url) from e

    def _parse(self, model: Type[M], data: Any, endpoint: str) -> M:
        """Validate a 2xx reply; an empty or mis-shaped body becomes an IndxError."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            url = self.url_for(endpoint)
            logger.error(f"Unexpected {model.__name__} response from {url}: {e.error_count()} validation errors")
            raise IndxError(f"Unexpected response from {url}: {e.errors()[0]['msg']}", url=url) from e

    @staticmethod
    def _name(dataset_name: str) -> str:
        return quote(dataset_name, safe="")

    # ---------------- Dataset lifecycle ----------------
    async def create_or_open(self, dataset_name: str) -> None:
        await self._send("PUT", f"CreateOrOpen/{self._name(dataset_name)}", data=b"")

    async def delete_dataset(self, dataset_name: str) -> None:
        await self._send("DELETE", f"DeleteDataSet/{self._name(dataset_name)}")

    async def get_user_datasets(self) -> List[str]:
        return await self._send_json("GET", "GetUserDataSets") or []

    async def get_status(self, dataset_name: str) -> SystemStatus:
        endpoint = f"GetStatus/{self._name(dataset_name)}"
        data = await self._send_json("GET", endpoint)
        return self._parse(SystemStatus, data or {}, endpoint)

    async def get_number_of_json_records(self, dataset_name: str) -> int:
        endpoint = f"GetNumberOfJsonRecordsInDb/{self._name(dataset_name)}"
        data = await self._send_json("GET", endpoint)
        try:
            return int(data or 0)
        except (TypeError, ValueError) as e:
            url = self.url_for(endpoint)
            raise IndxError(f"Unexpected record count from {url}: {data!r}", url=url) from e

    # ---------------- Analyze ----------------
    async def analyze_string(self, dataset_name: str, content: str) -> SystemStatus:
        endpoint = f"AnalyzeString/{self._name(dataset_name)}"
        data = await self._send_json(
            "POST", endpoint,
            data=content.encode("utf-8"), headers={"Content-Type": "text/plain"},
        )
        return self._parse(SystemStatus, data or {}, endpoint)

    async def analyze_stream(self, dataset_name: str, file_path: str) -> SystemStatus:
        endpoint = f"AnalyzeStreamAsync/{self._name(dataset_name)}"
        with open(file_path, "rb") as fh:
            data = await self._send_json(
                "POST", endpoint,
                data=fh, headers=self._stream_headers(file_path),
            )
        return self._parse(SystemStatus, data or {}, endpoint)

    # ---------------- Field configuration ----------------
    async def get_all_fields(self, dataset_name: str) -> List[str]:
        return await self._send_json("GET", f"GetAllFields/{self._name(dataset_name)}") or []

    async def set_searchable_fields(self, dataset_name: str, fields: Sequence[SearchableField]) -> None:
        body = [field.to_wire() for field in fields]
        await self._send("PUT", f"SetSearchableFields/{self._name(dataset_name)}", json=body)

    async def set_fields(self, category: str, dataset_name: str, fields: Iterable[str]) -> None:
        """PUT Set{category}Fields with a plain list of field names."""
        if category not in FIELD_CATEGORIES or category == "Searchable":
            raise ValueError(f"Unsupported field category for plain name lists: {category}")
        await self._send("PUT", f"Set{category}Fields/{self._name(dataset_name)}", json=list(fields))

    async def get_fields(self, category: str, dataset_name: str) -> List[Any]:
        if category not in FIELD_CATEGORIES:
            raise ValueError(f"Unknown field category: {category}")
        return await self._send_json("GET", f"Get{category}Fields/{self._name(dataset_name)}") or []

    async def clear_field_settings(self, dataset_name: str, fields: Iterable[str]) -> None:
        await self._send("PUT", f"ClearFieldSettings/{self._name(dataset_name)}", json=list(fields))

    # ---------------- Filters & boosts ----------------
    async def create_range_filter(self, dataset_name: str, range_filter: RangeFilterProxy) -> FilterProxy:
        endpoint = f"CreateRangeFilter/{self._name(dataset_name)}"
        data = await self._send_json("PUT", endpoint, json=range_filter.to_wire())
        return self._parse(FilterProxy, data, endpoint)

    async def create_value_filter(self, dataset_name: str, value_filter: ValueFilterProxy) -> FilterProxy:
        endpoint = f"CreateValueFilter/{self._name(dataset_name)}"
        data = await self._send_json("PUT", endpoint, json=value_filter.to_wire())
        return self._parse(FilterProxy, data, endpoint)

    async def combine_filters(self, dataset_name: str, combined: CombinedFilterProxy) -> FilterProxy:
        endpoint = f"CombineFilters/{self._name(dataset_name)}"
        data = await self._send_json("PUT", endpoint, json=combined.to_wire())
        return self._parse(FilterProxy, data, endpoint)

    async def create_boost(self, dataset_name: str, boost: BoostProxy) -> BoostProxy:
        endpoint = f"CreateBoost/{self._name(dataset_name)}"
        data = await self._send_json("PUT", endpoint, json=boost.to_wire())
        return self._parse(BoostProxy, data, endpoint)

    # ---------------- Load & index ----------------
    @staticmethod
    def _stream_headers(file_path: str) -> Dict[str, str]:
        return {
            "Content-Type": "text/plain",
            "Content-Length": str(os.path.getsize(file_path)),
        }

    async def load_stream(self, dataset_name: str, file_path: str) -> None:
        """Stream the file as the dataset payload. No client-side size limit."""
        headers = self._stream_headers(file_path)
        logger.debug(f"Streaming {headers['Content-Length']} bytes from {file_path}")
        with open(file_path, "rb") as fh:
            await self._send("PUT", f"LoadStream/{self._name(dataset_name)}", data=fh, headers=headers)

    async def load_string(self, dataset_name: str, file_path: str) -> None:
        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()
        await self._send(
            "PUT", f"LoadString/{self._name(dataset_name)}",
            data=content.encode("utf-8"), headers={"Content-Type": "text/plain"},
        )

    async def load_from_database(self, dataset_name: str) -> None:
        await self._send("GET", f"LoadFromDatabase/{self._name(dataset_name)}")

    async def index_dataset(self, dataset_name: str) -> None:
        await self._send("GET", f"IndexDataSet/{self._name(dataset_name)}")

    # ---------------- Search & documents ----------------
    async def search(self, dataset_name: str, query: CloudQuery) -> Optional[Result]:
        endpoint = f"Search/{self._name(dataset_name)}"
        data = await self._send_json("POST", endpoint, json=query.to_wire())
        return self._parse(Result, data, endpoint) if data is not None else None

    async def get_json(self, dataset_name: str, document_keys: Sequence[int]) -> List[str]:
        return await self._send_json(
            "POST", f"GetJson/{self._name(dataset_name)}", json=list(document_keys)
        ) or []

    async def delete_document(self, dataset_name: str, document_key: int) -> None:
        await self._send("DELETE", f"{self._name(dataset_name)}/{document_key}")

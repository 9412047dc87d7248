# src/indx_loader/schemas/indx_schemas.py
"""
Wire models for the IndxCloudApi endpoints.

The server speaks camelCase JSON. Every model accepts both the camelCase alias
and the snake_case field name on input, and ``to_wire()`` dumps camelCase.
"""
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SystemState(IntEnum):
    """Dataset lifecycle stage as reported by GetStatus."""
    Hibernated = -1
    Created = 0
    Loading = 1
    Loaded = 2
    Indexing = 3
    Ready = 4
    Error = 255


class Weight(IntEnum):
    """Searchable field weight. Lower code = higher relevance priority."""
    High = 0
    Med = 1
    Low = 2


class BoostStrength(IntEnum):
    Low = 1
    Medium = 2
    High = 3


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Status ---
class LicenseInfo(WireModel):
    description: Optional[str] = None
    document_limit: int = 0
    document_limit_exceeded: bool = False
    expiration_date: Optional[str] = None
    licensed: bool = False
    licensed_to: Optional[str] = None
    license_file_name: Optional[str] = None
    type: Optional[str] = None
    valid_license: bool = False


class SystemStatus(WireModel):
    document_count: int = 0
    error_message: Optional[str] = None
    invalid_argument: bool = False
    invalid_data_set_name: bool = False
    invalid_state: bool = False
    license_info: Optional[LicenseInfo] = None
    re_index_required: bool = False
    search_counter: int = 0
    seconds_to_index: float = 0.0
    system_state: SystemState = SystemState.Created
    time_of_instance_creation: Optional[str] = None
    time_of_last_index_build: Optional[str] = None
    too_long_client_text: bool = False
    too_long_search_text: bool = False
    unknown_configuration_error: bool = False
    version: Optional[str] = None


# --- Filters & boosts ---
class FilterProxy(WireModel):
    """Opaque server-issued reference to a filter."""
    id: str
    field_name: Optional[str] = None


class RangeFilterProxy(WireModel):
    field_name: str
    lower_limit: float
    upper_limit: float


class ValueFilterProxy(WireModel):
    field_name: str
    value: Any


class CombinedFilterProxy(WireModel):
    filter1: FilterProxy
    filter2: FilterProxy
    use_and: bool = True


class BoostProxy(WireModel):
    filter_proxy: FilterProxy
    boost_strength: BoostStrength = BoostStrength.High


# --- Search ---
class CloudQuery(WireModel):
    text: Optional[str] = None
    max_number_of_records_to_return: Optional[int] = None
    sort_by: Optional[str] = None
    sort_ascending: Optional[bool] = None
    filter: Optional[FilterProxy] = None
    boosts: Optional[List[BoostProxy]] = None
    enable_boost: bool = False
    enable_coverage: Optional[bool] = None
    enable_facets: bool = False
    coverage_depth: Optional[int] = None
    remove_duplicates: Optional[bool] = None
    log_prefix: Optional[str] = None
    time_out_limit_milliseconds: Optional[int] = None


class SearchRecord(WireModel):
    document_key: int
    score: float = 0.0


class FacetCount(WireModel):
    key: str
    value: int


class Result(WireModel):
    records: Optional[List[SearchRecord]] = None
    facets: Optional[Dict[str, List[FacetCount]]] = None
    did_time_out: bool = False
    truncation_index: int = 0
    truncation_score: float = 0.0

    @property
    def record_count(self) -> int:
        return len(self.records or [])


class LoginRequest(BaseModel):
    """Login body. The server expects these exact PascalCase property names."""
    user_email: str = Field(serialization_alias="UserEmail")
    user_password: str = Field(serialization_alias="UserPassWord")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

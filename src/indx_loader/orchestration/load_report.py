# src/indx_loader/orchestration/load_report.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..schemas.indx_schemas import BoostProxy, FilterProxy


@dataclass
class FilterChainResult:
    """Outcome of the optional range + value -> combined -> boost demonstration."""
    status: str = "skipped"   # "skipped" / "partial" / "built"
    range_filter: Optional[FilterProxy] = None
    value_filter: Optional[FilterProxy] = None
    combined_filter: Optional[FilterProxy] = None
    boost: Optional[BoostProxy] = None
    error: Optional[str] = None

    @property
    def steps_built(self) -> List[str]:
        steps = {
            "range": self.range_filter,
            "value": self.value_filter,
            "combined": self.combined_filter,
            "boost": self.boost,
        }
        return [name for name, value in steps.items() if value is not None]

    def describe(self) -> str:
        if self.status == "skipped":
            return "skipped"
        return f"{self.status} ({', '.join(self.steps_built) or 'nothing built'})"


@dataclass
class LoadReport:
    dataset: str
    status: str = "success"
    failed_phase: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    discovered_fields: List[str] = field(default_factory=list)
    field_counts: Dict[str, int] = field(default_factory=dict)
    record_count: int = 0
    loading_seconds: float = 0.0
    indexing_seconds: float = 0.0
    result_count: int = 0
    filter_chain: FilterChainResult = field(default_factory=FilterChainResult)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status == "success" and self.error is None

    def fail(self, phase: str, error: str) -> "LoadReport":
        self.status = "error"
        self.failed_phase = phase
        self.error = error
        return self

    def summary_items(self) -> Dict[str, Any]:
        items: Dict[str, Any] = {
            "Dataset": self.dataset,
            "Total Records": f"{self.record_count:,}",
        }
        items.update(self.field_counts)
        items["Loading Time"] = f"{self.loading_seconds:.1f}s"
        items["Indexing Time"] = f"{self.indexing_seconds:.1f}s"
        items["Test Query Results"] = self.result_count
        items["Filter/Boost Example"] = self.filter_chain.describe()
        return items

# src/indx_loader/orchestration/load_orchestrator.py
"""
Drives one dataset through the IndxCloudApi lifecycle:

    validate -> open -> analyze -> configure fields -> (filter/boost example)
    -> load -> wait for load -> index -> wait for index -> test search -> summary

Each phase runs only after the previous one succeeded. Failures are turned
into a failed LoadReport at the call site; nothing is rolled back.
"""
import json
import logging
import time
from pathlib import Path
from typing import Optional

from ..clients.exceptions import IndxApiError, IndxConnectionError, IndxError
from ..clients.indx_client import FIELD_CATEGORIES, IndxClient
from ..config.dataset_config import DatasetConfig, get_available_datasets, get_config
from ..schemas.indx_schemas import (
    BoostProxy,
    CloudQuery,
    CombinedFilterProxy,
    RangeFilterProxy,
    SystemState,
    SystemStatus,
    ValueFilterProxy,
)
from ...utils.console import ConsoleHelper
from .load_report import FilterChainResult, LoadReport
from .polling import PollOutcome, PollResult, poll_until

logger = logging.getLogger(__name__)

TEST_QUERY_MAX_RECORDS = 5

CATEGORY_LABELS = {
    "Searchable": "searchable",
    "Filterable": "filterable",
    "Facetable": "facetable",
    "Sortable": "sortable",
    "WordIndexing": "word indexing",
}


class DatasetLoadOrchestrator:
    def __init__(
        self,
        client: IndxClient,
        dataset_name: str,
        *,
        console: Optional[ConsoleHelper] = None,
        interval_seconds: float = 0.1,
        load_timeout_seconds: Optional[float] = None,
        index_timeout_seconds: Optional[float] = None,
        from_database: bool = False,
        recreate: bool = False,
    ):
        self.client = client
        self.dataset_name = dataset_name
        self.console = console or ConsoleHelper()
        self.interval_seconds = interval_seconds
        self.load_timeout_seconds = load_timeout_seconds
        self.index_timeout_seconds = index_timeout_seconds
        self.from_database = from_database
        self.recreate = recreate

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    async def run(self) -> LoadReport:
        config = get_config(self.dataset_name)
        report = LoadReport(dataset=config.name if config else self.dataset_name)

        if not self._validate(config, report):
            return report
        report.field_counts = config.field_counts()

        phases = (
            self._open,
            self._analyze,
            self._configure_fields,
            self._build_filter_example,
            self._load,
            self._wait_for_load,
            self._index,
            self._wait_for_index,
            self._test_search,
        )
        for phase in phases:
            if not await phase(config, report):
                logger.error(f"❌ Load of '{report.dataset}' stopped at phase '{report.failed_phase}': {report.error}")
                return report

        self.console.summary("Dataset Load Complete", report.summary_items())
        self.console.success("Dataset is ready for use!")
        self.console.blank()
        return report

    # ------------------------------------------------------------------
    # Phase 0: preconditions, no network
    # ------------------------------------------------------------------
    def _validate(self, config: Optional[DatasetConfig], report: LoadReport) -> bool:
        if config is None:
            self.console.error(f"Unknown dataset: {self.dataset_name}")
            self.console.info(f"Available datasets: {', '.join(get_available_datasets())}")
            report.fail("validate", f"Unknown dataset: {self.dataset_name}")
            return False

        path = Path(config.file_path)
        resolved = path.resolve()
        if not path.is_file():
            self.console.error(f"Data file not found: {config.file_path}")
            self.console.info("Please ensure the data file exists in the correct location.")
            self.console.info(f"Expected path: {resolved}")
            report.fail("validate", f"Data file not found: {resolved}")
            return False

        size = path.stat().st_size
        if size == 0:
            self.console.error(f"Data file is empty: {resolved}")
            report.fail("validate", f"Data file is empty: {resolved}")
            return False

        try:
            with open(path, "r", encoding="utf-8") as f:
                json.load(f)
        except (ValueError, UnicodeDecodeError) as e:
            self.console.error(f"Data file is not valid JSON: {resolved}")
            self.console.info(str(e))
            report.fail("validate", f"Invalid JSON in {resolved}: {e}")
            return False

        self.console.header(f"Loading Dataset: {config.name}")
        self.console.info(f"Data file: {config.file_path}")
        self.console.info(f"File size: {size / 1024 / 1024:.2f} MB")
        self.console.blank()
        return True

    # ------------------------------------------------------------------
    # Phase 1: open
    # ------------------------------------------------------------------
    async def _open(self, config: DatasetConfig, report: LoadReport) -> bool:
        if self.recreate:
            self.console.info("Deleting existing dataset...")
            try:
                await self.client.delete_dataset(config.name)
                self.console.success("Existing dataset deleted")
            except IndxApiError as e:
                # A dataset that does not exist yet cannot be deleted; not fatal
                self.console.warning(f"Could not delete dataset (HTTP {e.status}), continuing")
                report.warnings.append(f"delete: {e}")
            except IndxConnectionError as e:
                return self._connectivity_failure(report, e)

        self.console.info("Creating or opening dataset...")
        try:
            await self.client.create_or_open(config.name)
        except IndxConnectionError as e:
            return self._connectivity_failure(report, e)
        except IndxError as e:
            self.console.error("Failed to create or open dataset.")
            self.console.info("Troubleshooting:")
            self.console.info("  1. Verify API_URI in .env.local is correct")
            self.console.info("  2. Ensure IndxCloudApi is running")
            self.console.info("  3. Check that BEARER_TOKEN is valid (not expired)")
            report.fail("open", str(e))
            return False

        self.console.success("Dataset opened successfully")
        return True

    def _connectivity_failure(self, report: LoadReport, error: IndxConnectionError) -> bool:
        self.console.error(f"Network error: {error}")
        self.console.info("Troubleshooting:")
        self.console.info(f"  - Cannot connect to: {self.client.base_url}")
        self.console.info("  - Is IndxCloudApi running?")
        self.console.info("  - Check your firewall settings")
        report.fail("open", str(error))
        return False

    # ------------------------------------------------------------------
    # Phase 2: analyze
    # ------------------------------------------------------------------
    async def _analyze(self, config: DatasetConfig, report: LoadReport) -> bool:
        self.console.info("Analyzing data structure...")
        try:
            with open(config.file_path, "r", encoding="utf-8") as f:
                content = f.read()
            await self.client.analyze_string(config.name, content)
        except IndxError as e:
            self.console.error("Failed to analyze data file")
            report.fail("analyze", str(e))
            return False
        self.console.success("Data structure analyzed")

        self.console.info("Discovering fields in dataset...")
        try:
            report.discovered_fields = await self.client.get_all_fields(config.name)
        except IndxError as e:
            self.console.warning(f"Could not list discovered fields: {e}")
            report.warnings.append(f"GetAllFields: {e}")
            return True

        self.console.success(f"Found {len(report.discovered_fields)} fields")
        self.console.info(f"Fields: {', '.join(report.discovered_fields)}")
        self.console.blank()
        return True

    # ------------------------------------------------------------------
    # Phase 3: configure fields
    # ------------------------------------------------------------------
    async def _configure_fields(self, config: DatasetConfig, report: LoadReport) -> bool:
        plain_fields = {
            "Filterable": config.filterable_fields,
            "Facetable": config.facetable_fields,
            "Sortable": config.sortable_fields,
            "WordIndexing": config.word_indexing_fields,
        }

        for category in FIELD_CATEGORIES:
            label = CATEGORY_LABELS[category]
            self.console.info(f"Configuring {label} fields...")
            try:
                if category == "Searchable":
                    await self.client.set_searchable_fields(config.name, config.searchable_fields)
                else:
                    await self.client.set_fields(category, config.name, plain_fields[category])
            except IndxError as e:
                self.console.error(f"Failed to set {label} fields")
                report.fail("configure", f"{category}: {e}")
                return False

            if category == "Searchable":
                self.console.success(f"Configured {len(config.searchable_fields)} searchable fields")
                for field in config.searchable_fields:
                    self.console.info(f"  - {field.name} (weight: {field.weight.name})")
            else:
                self.console.success(f"Configured {len(plain_fields[category])} {label} fields")
        self.console.blank()

        self.console.info("Verifying field configuration...")
        verified = True
        for category in FIELD_CATEGORIES:
            try:
                fields = await self.client.get_fields(category, config.name)
                logger.debug(f"{category} fields on server: {fields}")
            except IndxError as e:
                verified = False
                self.console.warning(f"Could not read back {CATEGORY_LABELS[category]} fields: {e}")
                report.warnings.append(f"Get{category}Fields: {e}")
        if verified:
            self.console.success("Field configuration verified")
        self.console.blank()
        return True

    # ------------------------------------------------------------------
    # Phase 4: optional filter / boost example, never fails the run
    # ------------------------------------------------------------------
    async def _build_filter_example(self, config: DatasetConfig, report: LoadReport) -> bool:
        example = config.filter_example
        chain = FilterChainResult()
        report.filter_chain = chain
        if example is None:
            return True

        self.console.info("Creating example filters and boost...")
        try:
            chain.range_filter = await self.client.create_range_filter(
                config.name,
                RangeFilterProxy(
                    field_name=example.range_field,
                    lower_limit=example.lower_limit,
                    upper_limit=example.upper_limit,
                ),
            )
        except IndxError as e:
            chain.error = f"range filter: {e}"

        try:
            chain.value_filter = await self.client.create_value_filter(
                config.name,
                ValueFilterProxy(field_name=example.value_field, value=example.value),
            )
        except IndxError as e:
            chain.error = f"value filter: {e}"

        if chain.range_filter is not None and chain.value_filter is not None:
            try:
                chain.combined_filter = await self.client.combine_filters(
                    config.name,
                    CombinedFilterProxy(
                        filter1=chain.range_filter,
                        filter2=chain.value_filter,
                        use_and=example.use_and,
                    ),
                )
            except IndxError as e:
                chain.error = f"combine filters: {e}"

        if chain.combined_filter is not None:
            try:
                chain.boost = await self.client.create_boost(
                    config.name,
                    BoostProxy(filter_proxy=chain.combined_filter, boost_strength=example.boost_strength),
                )
            except IndxError as e:
                chain.error = f"boost: {e}"

        if chain.boost is not None:
            chain.status = "built"
            self.console.success("Example filter and boost created")
        elif chain.steps_built:
            chain.status = "partial"
            self.console.warning(f"Example filter chain incomplete: {chain.error}")
        else:
            self.console.warning(f"Example filters not created: {chain.error}")
        return True

    # ------------------------------------------------------------------
    # Phase 5 + 6: load and wait
    # ------------------------------------------------------------------
    async def _load(self, config: DatasetConfig, report: LoadReport) -> bool:
        self.console.header("Loading Data")
        try:
            if self.from_database:
                self.console.info("Loading data from the server database...")
                await self.client.load_from_database(config.name)
            else:
                self.console.info(f"Streaming data from {config.file_path}...")
                await self.client.load_stream(config.name, config.file_path)
        except (IndxError, OSError) as e:
            self.console.error("Failed to load data")
            report.fail("load", str(e))
            return False
        return True

    def _progress(self, label: str):
        def on_tick(attempt: int, status: SystemStatus) -> None:
            self.console.progress(f"{label}{'.' * (attempt % 4)}   ")
        return on_tick

    async def _poll_status(self, config: DatasetConfig, label: str, is_done, timeout_seconds) -> PollResult:
        result = await poll_until(
            lambda: self.client.get_status(config.name),
            is_done,
            interval_seconds=self.interval_seconds,
            timeout_seconds=timeout_seconds,
            on_tick=self._progress(label),
        )
        self.console.end_progress()
        return result

    def _poll_failure(self, report: LoadReport, phase: str, result: PollResult, what: str) -> bool:
        if result.outcome == PollOutcome.FETCH_FAILED:
            self.console.error(f"Status request failed while {what}: {result.error}")
            report.fail(phase, f"GetStatus failed: {result.error}")
        elif result.outcome == PollOutcome.TIMED_OUT:
            state = result.last_value.system_state.name if result.last_value else "unknown"
            self.console.error(f"Timed out after {result.elapsed_seconds:.1f}s while {what} (last state: {state})")
            report.fail(phase, f"Timed out in state {state}")
        else:
            message = result.last_value.error_message or "no error message"
            self.console.error(f"Server reported an error while {what}: {message}")
            report.fail(phase, f"System state Error: {message}")
        return False

    async def _wait_for_load(self, config: DatasetConfig, report: LoadReport) -> bool:
        result = await self._poll_status(
            config,
            "Loading data",
            lambda status: status.system_state != SystemState.Loading,
            self.load_timeout_seconds,
        )
        report.loading_seconds = result.elapsed_seconds
        if not result.is_done or result.last_value.system_state == SystemState.Error:
            return self._poll_failure(report, "wait_load", result, "loading")

        self.console.success(f"Data loaded in {report.loading_seconds:.1f} seconds")
        try:
            report.record_count = await self.client.get_number_of_json_records(config.name)
        except IndxError as e:
            self.console.warning(f"Could not read record count: {e}")
            report.warnings.append(f"GetNumberOfJsonRecordsInDb: {e}")
        self.console.info(f"Total records: {report.record_count:,}")
        self.console.blank()
        return True

    # ------------------------------------------------------------------
    # Phase 7 + 8: index and wait
    # ------------------------------------------------------------------
    async def _index(self, config: DatasetConfig, report: LoadReport) -> bool:
        self.console.header("Building Search Index")
        self.console.info("Indexing dataset (this may take a moment)...")
        try:
            await self.client.index_dataset(config.name)
        except IndxError as e:
            self.console.error("Failed to start indexing")
            report.fail("index", str(e))
            return False
        return True

    async def _wait_for_index(self, config: DatasetConfig, report: LoadReport) -> bool:
        result = await self._poll_status(
            config,
            "Indexing",
            lambda status: status.system_state in (SystemState.Ready, SystemState.Error),
            self.index_timeout_seconds,
        )
        report.indexing_seconds = result.elapsed_seconds
        if not result.is_done or result.last_value.system_state != SystemState.Ready:
            return self._poll_failure(report, "wait_index", result, "indexing")

        self.console.success(f"Index built in {report.indexing_seconds:.1f} seconds")
        self.console.blank()
        return True

    # ------------------------------------------------------------------
    # Phase 9: verification search
    # ------------------------------------------------------------------
    async def _test_search(self, config: DatasetConfig, report: LoadReport) -> bool:
        self.console.header("Running Test Search")
        self.console.info(f'Search query: "{config.test_query}"')

        query = CloudQuery(
            text=config.test_query,
            max_number_of_records_to_return=TEST_QUERY_MAX_RECORDS,
            sort_by=config.default_sort_field,
            enable_facets=False,
            enable_boost=False,
        )
        try:
            result = await self.client.search(config.name, query)
        except IndxError as e:
            self.console.error(f"Search failed: {e}")
            report.fail("verify", str(e))
            return False

        if result is None or not result.records:
            self.console.error("Search returned no results")
            report.fail("verify", "Search returned no results")
            return False

        report.result_count = result.record_count
        self.console.success(f"Found {report.result_count} results")
        self.console.blank()

        for num, record in enumerate(result.records, start=1):
            try:
                documents = await self.client.get_json(config.name, [record.document_key])
                document = documents[0] if documents else "<empty>"
            except IndxError as e:
                document = "<unavailable>"
                report.warnings.append(f"GetJson {record.document_key}: {e}")
            self.console.info(f"Result {num}:")
            self.console.info(f"  Score: {record.score:.2f}")
            self.console.info(f"  Document Key: {record.document_key}")
            self.console.info(f"  Data: {document}")
            self.console.blank()
        return True


async def load_dataset(client: IndxClient, dataset_name: str, **kwargs) -> LoadReport:
    """Convenience wrapper: run the full load workflow for one dataset."""
    started = time.monotonic()
    report = await DatasetLoadOrchestrator(client, dataset_name, **kwargs).run()
    logger.info(
        f"Load of '{report.dataset}' finished in {time.monotonic() - started:.1f}s with status {report.status.upper()}"
    )
    return report

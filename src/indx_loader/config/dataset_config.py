# src/indx_loader/config/dataset_config.py
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..schemas.indx_schemas import BoostStrength, Weight


@dataclass(frozen=True)
class SearchableField:
    name: str
    weight: Weight

    def to_wire(self) -> Dict[str, Any]:
        """
        Serialize as the server's ValueTuple<string, int>: Item1 = name, Item2 = weight code.
        The server binds these positionally, so {"name", "weight"} objects are rejected.
        """
        return {"Item1": self.name, "Item2": int(self.weight)}


@dataclass(frozen=True)
class FilterExample:
    """Range filter AND value filter on the dataset, wrapped in a boost."""
    range_field: str
    lower_limit: float
    upper_limit: float
    value_field: str
    value: Any
    use_and: bool = True
    boost_strength: BoostStrength = BoostStrength.High


@dataclass(frozen=True)
class DatasetConfig:
    name: str
    file_path: str
    searchable_fields: Tuple[SearchableField, ...]
    word_indexing_fields: Tuple[str, ...]
    filterable_fields: Tuple[str, ...]
    facetable_fields: Tuple[str, ...]
    sortable_fields: Tuple[str, ...]
    test_query: str
    filter_example: Optional[FilterExample] = None

    @property
    def default_sort_field(self) -> Optional[str]:
        return self.sortable_fields[0] if self.sortable_fields else None

    def field_counts(self) -> Dict[str, int]:
        return {
            "Searchable Fields": len(self.searchable_fields),
            "Word Indexing Fields": len(self.word_indexing_fields),
            "Filterable Fields": len(self.filterable_fields),
            "Facetable Fields": len(self.facetable_fields),
            "Sortable Fields": len(self.sortable_fields),
        }


# ============================================================================
# DATASET REGISTRY
# ============================================================================
TMDB_FACETS = ("release_year", "vote_average", "vote_count_tier", "genres", "decade", "actors", "language")
POKEDEX_FACETS = ("speed", "attack", "hp", "type1", "type2", "is_legendary")

DATASETS: Dict[str, DatasetConfig] = {
    "tmdb": DatasetConfig(
        name="tmdb",
        file_path="data/tmdb_top10k.json",
        searchable_fields=(
            SearchableField("title", Weight.High),
            SearchableField("original_title", Weight.Med),
            SearchableField("description", Weight.Med),
            SearchableField("actors", Weight.Low),
        ),
        word_indexing_fields=("title",),
        filterable_fields=TMDB_FACETS,
        facetable_fields=TMDB_FACETS,
        sortable_fields=("popularity", "vote_average"),
        test_query="titanic",
    ),
    "pokedex": DatasetConfig(
        name="pokedex",
        file_path="data/pokedex.json",
        searchable_fields=(
            SearchableField("name", Weight.High),
            SearchableField("type1", Weight.Med),
            SearchableField("type2", Weight.Low),
        ),
        word_indexing_fields=("name", "type1", "type2"),
        filterable_fields=POKEDEX_FACETS,
        facetable_fields=POKEDEX_FACETS,
        sortable_fields=("name", "speed"),
        # Deliberately misspelled: exercises word-indexed fuzzy matching
        test_query="raic",
        filter_example=FilterExample(
            range_field="speed",
            lower_limit=10.5,
            upper_limit=50.0,
            value_field="speed",
            value=50,
        ),
    ),
}


def get_config(dataset_name: str) -> Optional[DatasetConfig]:
    """Case-insensitive lookup. Returns None for unknown datasets."""
    if not dataset_name:
        return None
    return DATASETS.get(dataset_name.strip().lower())


def get_available_datasets() -> List[str]:
    return list(DATASETS.keys())

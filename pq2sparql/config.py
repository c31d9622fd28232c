"""Configuration management for pq2sparql."""

import os
from dataclasses import dataclass, field
from typing import Optional


# Default SPARQL endpoint (public DBpedia)
DBPEDIA_ENDPOINT = "https://dbpedia.org/sparql"

# Namespace -> prefix mappings known to the renderer
DEFAULT_PREFIXES = {
    "http://dbpedia.org/ontology/": "dbpedia-owl",
    "http://dbpedia.org/property/": "dbpprop",
    "http://dbpedia.org/resource/": "dbpedia",
    "http://dbpedia.org/class/yago/": "yago",
    "http://xmlns.com/foaf/0.1/": "foaf",
    "http://schema.org/": "schema",
    "http://www.w3.org/2001/XMLSchema#": "xsd",
    "http://www.w3.org/2002/07/owl#": "owl",
    "http://www.w3.org/2000/01/rdf-schema#": "rdfs",
    "http://www.w3.org/1999/02/22-rdf-syntax-ns#": "rdf",
    "http://purl.org/ontology/bibo/": "bibo",
    "http://purl.org/ontology/mo/": "mo",
}

# Full-text filter used for resource search; $x is the label variable and $text
# the search text as a quoted SPARQL literal.
# Virtuoso users may prefer: "$x bif:contains $text ."
DEFAULT_TEXT_SEARCH_PATTERN = "FILTER(CONTAINS(LCASE(STR($x)), LCASE($text)))"


@dataclass
class SearchConfig:
    """Constants of the candidate search. All of them are heuristics and tunable."""

    # Score of leaving one variable unconstrained
    no_type_constraint_penalty: float = 0.1
    # Expanded words (synonyms, hypernyms) rank below the literal variable name
    synonym_penalty: float = 0.9
    # Further damping of hypernyms: "person" names the class of "author" only loosely
    hypernym_penalty: float = 0.1
    # Resource lookup: raw matches fetched, and best matches kept
    resource_search_limit: int = 1000
    resource_candidates: int = 5
    # Try at least N resources (more if the first N yield no property match)
    min_resources_to_try: int = 3
    inexact_match_penalty: float = 0.5
    # Property lookup
    property_search_limit: int = 1000
    property_candidates: int = 10
    connectivity_bonus_weight: float = 0.00001
    non_object_property_penalty: float = 0.1
    object_property_bonus: float = 1.01
    # Type lookup tie break
    population_bonus_weight: float = 0.01
    # Whole-query candidates handed to the selector
    max_query_candidates: int = 100

    def __post_init__(self):
        """Reject values that would break the search invariants."""
        if not 0.0 < self.no_type_constraint_penalty < 1.0:
            raise ValueError("no_type_constraint_penalty must be in (0, 1)")
        if not 0.0 < self.synonym_penalty < 1.0:
            raise ValueError("synonym_penalty must be in (0, 1)")
        if not 0.0 < self.hypernym_penalty < 1.0:
            raise ValueError("hypernym_penalty must be in (0, 1)")
        if not 0.0 < self.non_object_property_penalty < 1.0:
            raise ValueError("non_object_property_penalty must be in (0, 1)")
        if self.object_property_bonus < 1.0:
            raise ValueError("object_property_bonus must be >= 1")
        for name in (
            "resource_search_limit",
            "resource_candidates",
            "min_resources_to_try",
            "property_search_limit",
            "property_candidates",
            "max_query_candidates",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")


@dataclass
class TypeDefaults:
    """Type constraints for variables whose category is known from the wh-word."""

    agent_classes: tuple[str, ...] = (
        "http://dbpedia.org/ontology/Person",
        "http://dbpedia.org/ontology/Organisation",
    )
    place_classes: tuple[str, ...] = ("http://dbpedia.org/ontology/Place",)
    date_datatype: str = "http://www.w3.org/2001/XMLSchema#date"


@dataclass
class GatewayConfig:
    """Configuration for the SPARQL knowledge base gateway."""

    endpoint: str = DBPEDIA_ENDPOINT
    timeout: int = 30
    graphs: list[str] = field(default_factory=list)
    prefixes: dict[str, str] = field(default_factory=dict)
    text_search_pattern: str = DEFAULT_TEXT_SEARCH_PATTERN
    result_limit: int = 1000
    label_language: str = "en"

    def __post_init__(self):
        """Merge the default prefixes below the configured ones."""
        merged = dict(DEFAULT_PREFIXES)
        merged.update(self.prefixes)
        self.prefixes = merged


@dataclass
class EngineConfig:
    """Main configuration for the synthesis engine."""

    search: SearchConfig = field(default_factory=SearchConfig)
    types: TypeDefaults = field(default_factory=TypeDefaults)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)

    @classmethod
    def from_env(cls, endpoint: Optional[str] = None) -> "EngineConfig":
        """Create config from environment variables."""
        graphs = os.environ.get("PQ2SPARQL_GRAPHS", "")
        gateway = GatewayConfig(
            endpoint=endpoint or os.environ.get("PQ2SPARQL_ENDPOINT", DBPEDIA_ENDPOINT),
            timeout=int(os.environ.get("PQ2SPARQL_TIMEOUT", "30")),
            graphs=[g.strip() for g in graphs.split(",") if g.strip()],
        )
        search = SearchConfig(
            max_query_candidates=int(os.environ.get("PQ2SPARQL_MAX_CANDIDATES", "100")),
        )
        return cls(search=search, gateway=gateway)

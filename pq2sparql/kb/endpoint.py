"""Knowledge base gateway over a remote SPARQL endpoint."""

import logging
import urllib.error
import warnings
from typing import Optional

from SPARQLWrapper import JSON, POST, SPARQLWrapper
from SPARQLWrapper.SPARQLExceptions import (
    EndPointNotFound,
    SPARQLWrapperException,
)

from ..config import GatewayConfig
from ..errors import GatewayUnavailable, LookupFailure
from .sparql import RawRow, SPARQLGateway

logger = logging.getLogger(__name__)


class EndpointGateway(SPARQLGateway):
    """SPARQL endpoint accessed over HTTP with SPARQLWrapper.

    Every call uses its own SPARQLWrapper client, so calls may run
    concurrently.
    """

    thread_safe = True

    def __init__(self, config: Optional[GatewayConfig] = None):
        super().__init__(config)
        self.endpoint = self.config.endpoint
        self.timeout = self.config.timeout

    def _select(self, sparql: str) -> list[RawRow]:
        client = SPARQLWrapper(self.endpoint)
        client.setQuery(sparql)
        client.setReturnFormat(JSON)
        client.setTimeout(self.timeout)
        client.setMethod(POST)
        # Explicitly request JSON to avoid HTML error pages
        client.addCustomHttpHeader("Accept", "application/sparql-results+json")

        try:
            # Suppress SPARQLWrapper warning about unexpected content types
            with warnings.catch_warnings():
                warnings.filterwarnings(
                    "ignore",
                    message="unknown response content type",
                    category=RuntimeWarning,
                    module="SPARQLWrapper",
                )
                results = client.query().convert()
        except EndPointNotFound as e:
            raise GatewayUnavailable(f"Endpoint not found: {self.endpoint}") from e
        except SPARQLWrapperException as e:
            # Bad request, internal server error, unauthorized, ...
            raise LookupFailure(f"Query rejected by endpoint: {e}") from e
        except TimeoutError as e:
            raise LookupFailure(f"Query timeout after {self.timeout}s") from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                raise LookupFailure(f"Query timeout after {self.timeout}s") from e
            raise GatewayUnavailable(f"Connection error: {e}") from e
        except ConnectionError as e:
            raise GatewayUnavailable(f"Connection error: {e}") from e

        if not isinstance(results, dict):
            raise LookupFailure("Malformed response: expected SPARQL JSON results")
        return results.get("results", {}).get("bindings", [])

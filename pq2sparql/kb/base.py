"""Knowledge base gateway abstraction."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..query import Query, TypeConstraint


@dataclass(frozen=True)
class ResourceHit:
    """A resource found by text search."""

    uri: str
    label: str


@dataclass(frozen=True)
class PropertyHit:
    """A property connecting the requested ends, with its connection count."""

    uri: str
    count: int = 0
    is_object_property: bool = False


class AnswerType(Enum):
    RESOURCE = "resource"
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class Binding:
    """Value of one variable in a result row."""

    value: str
    type: AnswerType
    label: Optional[str] = None  # Only used for resources


# Result rows are keyed by variable name
ResultRow = dict[str, Binding]


class KBGateway(ABC):
    """Synchronous access to the knowledge base.

    Implementations raise ``LookupFailure`` when a single call fails and
    ``GatewayUnavailable`` when the knowledge base cannot be reached.
    An empty list is a valid negative answer, never an error.
    """

    # Whether calls may run concurrently on one instance
    thread_safe: bool = False

    @abstractmethod
    def search_resources_by_text(self, text: str, limit: int) -> list[ResourceHit]:
        """Find resources whose label or name contains ``text``."""

    @abstractmethod
    def search_properties_connecting(
        self,
        subject: Optional[str] = None,
        object: Optional[str] = None,
        subject_type: Optional[TypeConstraint] = None,
        object_type: Optional[TypeConstraint] = None,
        limit: int = 1000,
    ) -> list[PropertyHit]:
        """
        Find properties connecting a (bound or typed) subject and object.

        Args:
            subject: Subject URI, or None for any subject
            object: Object URI, or None for any object
            subject_type: Constraint on an unbound subject
            object_type: Constraint on an unbound object
            limit: Maximum number of properties

        Returns:
            Properties ordered by descending connection count
        """

    @abstractmethod
    def class_population_count(self, class_uri: str) -> int:
        """Number of instances of a class."""

    @abstractmethod
    def is_known_class(self, uri: str) -> bool:
        """Whether ``uri`` is a class with instances in the knowledge base."""

    @abstractmethod
    def classes_in_use(self) -> list[str]:
        """All classes that have at least one instance."""

    @abstractmethod
    def execute(self, query: Query) -> list[ResultRow]:
        """Execute a resolved query; rows are keyed by variable name."""

    def shorten_uri(self, uri: str) -> str:
        """Prefixed form of a URI for traces; formatting only."""
        return uri


class SerializedGateway(KBGateway):
    """
    Wraps a gateway that is not thread safe so that at most one call runs at
    a time.

    Example:
        >>> gateway = SerializedGateway(GraphGateway.from_file("books.ttl"))
    """

    thread_safe = True

    def __init__(self, wrapped: KBGateway):
        self.wrapped = wrapped
        self._lock = threading.Lock()

    def search_resources_by_text(self, text: str, limit: int) -> list[ResourceHit]:
        with self._lock:
            return self.wrapped.search_resources_by_text(text, limit)

    def search_properties_connecting(
        self,
        subject: Optional[str] = None,
        object: Optional[str] = None,
        subject_type: Optional[TypeConstraint] = None,
        object_type: Optional[TypeConstraint] = None,
        limit: int = 1000,
    ) -> list[PropertyHit]:
        with self._lock:
            return self.wrapped.search_properties_connecting(
                subject=subject,
                object=object,
                subject_type=subject_type,
                object_type=object_type,
                limit=limit,
            )

    def class_population_count(self, class_uri: str) -> int:
        with self._lock:
            return self.wrapped.class_population_count(class_uri)

    def is_known_class(self, uri: str) -> bool:
        with self._lock:
            return self.wrapped.is_known_class(uri)

    def classes_in_use(self) -> list[str]:
        with self._lock:
            return self.wrapped.classes_in_use()

    def execute(self, query: Query) -> list[ResultRow]:
        with self._lock:
            return self.wrapped.execute(query)

    def shorten_uri(self, uri: str) -> str:
        with self._lock:
            return self.wrapped.shorten_uri(uri)

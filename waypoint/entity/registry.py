"""Registry of sets declared in datasources."""

import threading
from typing import Any

from ..datasource.base import Connection
from ..utils.logger import get_logger
from .descriptor import EntityDescriptor, describe

logger = get_logger(__name__)


class SchemaRegistry:
    """Memoizes which entity sets have been declared in which datasource.

    Entries are keyed by set name and datasource identity. Declaring holds
    the registry's lock so concurrent first use creates a set once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._declared: dict[tuple[str, int], Connection] = {}

    def ensure(self, entity: Any, datasource: Connection) -> bool:
        """Declare an entity's set in a datasource unless done before.

        Args:
            entity: Descriptor or declared entity type.
            datasource: Connection to declare the set in.

        Returns:
            True if the set was declared now, False if it was memoized.
        """
        descriptor: EntityDescriptor = describe(entity)
        key = (descriptor.set_name, id(datasource))

        with self._lock:
            if self._declared.get(key) is datasource:
                logger.debug("Schema of %s already ensured", descriptor.set_name)
                return False

            descriptor.declare_in(datasource)
            self._declared[key] = datasource
            return True

    def is_declared(self, entity: Any, datasource: Connection) -> bool:
        """Check if an entity's set has been ensured in a datasource."""
        key = (describe(entity).set_name, id(datasource))
        with self._lock:
            return self._declared.get(key) is datasource

    def forget(self, datasource: Connection | None = None) -> None:
        """Drop memoized entries of one datasource, or all entries."""
        with self._lock:
            if datasource is None:
                self._declared.clear()
            else:
                self._declared = {
                    k: v for k, v in self._declared.items() if v is not datasource
                }

    def __len__(self) -> int:
        with self._lock:
            return len(self._declared)

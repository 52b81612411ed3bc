"""
Persistence of selected bundle cells to a storage backend.

Each argument path owns one JSON record stored under
``"VIEW_MODEL." + path``. The record holds one entry per persisted cell:
the ``keys_to_persist`` allow-list when given, every cell otherwise.

Restoring reads the record back into the bundle's cells, passing each value
through its ``restore_fields`` hook first when one is declared:

```python
options = PersistenceOptions(
    storage=MemoryStorage(),
    keys_to_persist=["todo"],
    restore_fields={"todo": Todo.from_dict},
)
```

Writes are unconditional (last write wins). A record that does not decode
is logged and ignored, or raises ``PersistedStateError`` with
``strict=True``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .exceptions import PersistedStateError
from .fields import FieldKind, StateBundle
from .logger import DiagnosticLogger
from .logger import logger as default_logger
from .observable import transaction
from .storage import Storage
from .util import to_plain

STORAGE_KEY_PREFIX = "VIEW_MODEL."


def storage_key(path: str) -> str:
    return STORAGE_KEY_PREFIX + path


@dataclass(frozen=True)
class PersistenceOptions:
    """
    How a view model persists its state.

    Attributes:
        storage: Backend the records are written to.
        keys_to_persist: Cells to persist. ``None`` persists every cell,
            ``[]`` persists nothing.
        restore_fields: Per-field decode hooks applied to stored values
            before they are assigned back, e.g. reviving timestamps.
        strict: Raise ``PersistedStateError`` on unreadable records instead
            of logging and skipping them.
    """

    storage: Storage
    keys_to_persist: Optional[Sequence[str]] = None
    restore_fields: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    strict: bool = False


class Persistence:
    """Restores and persists the bundles of one view model."""

    def __init__(
        self, options: PersistenceOptions, logger: Optional[DiagnosticLogger] = None
    ):
        self._options = options
        self._logger = logger or default_logger

    @property
    def options(self) -> PersistenceOptions:
        return self._options

    def select_keys(self, bundle: StateBundle) -> List[str]:
        """Cells of ``bundle`` that take part in persistence."""
        cells = bundle.names(FieldKind.CELL)
        if self._options.keys_to_persist is None:
            return list(cells)
        return [key for key in self._options.keys_to_persist if key in cells]

    def read(self, path: str) -> Optional[Dict[str, Any]]:
        """Decoded record for ``path``, or None when there is none."""
        raw = self._options.storage.get(storage_key(path))
        if raw is None:
            self._logger.info(f'State not persisted for "{path}"')
            return None
        try:
            record = json.loads(raw)
        except json.JSONDecodeError as error:
            return self._reject(path, f"invalid JSON ({error})", error)
        if not isinstance(record, dict):
            return self._reject(
                path, f"expected a JSON object, got {type(record).__name__}"
            )
        return record

    def _reject(self, path: str, reason: str, cause: Optional[Exception] = None):
        message = f'Persisted state for "{path}" is unreadable: {reason}'
        if self._options.strict:
            raise PersistedStateError(message) from cause
        self._logger.error(message)
        return None

    def restore(self, path: str, bundle: StateBundle) -> None:
        """Assign the persisted values for ``path`` into the bundle's cells."""
        record = self.read(path)
        if record is None:
            self._logger.log(f'Skipping restore for "{path}"')
            return

        hooks = self._options.restore_fields or {}
        restored = {}
        with transaction():
            for key in self.select_keys(bundle):
                if key not in record:
                    continue
                value = record[key]
                hook = hooks.get(key)
                if hook is not None:
                    value = hook(value)
                self._logger.log("Restoring", key, "to", value)
                bundle[key].set(value)
                restored[key] = value
        self._logger.info(f'Restored state for "{path}"', restored)

    def persist(self, path: str, bundle: StateBundle) -> None:
        """Write the selected cells of ``bundle`` as the record for ``path``."""
        with self._logger.group(f'Persisting state for "{path}"'):
            keys = self.select_keys(bundle)
            self._logger.log("Keys to persist:", keys)
            record = {key: to_plain(bundle[key].value) for key in keys}
            self._logger.info("Persisted state:", record)
            self._options.storage.set(storage_key(path), json.dumps(record))


def create_persistence(
    options: PersistenceOptions, logger: Optional[DiagnosticLogger] = None
) -> Persistence:
    return Persistence(options, logger)

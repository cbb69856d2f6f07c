"""Operator-supplied schema extras: label, plural and display-field overrides.

Extras are flat records keyed by table and field. A record with an empty
``field`` describes the table itself:

    {"table": "orders", "field": "", "label": "Purchase Order", "plural": "Purchase Orders",
     "name_field": "number"}
    {"table": "orders", "field": "cust_id", "label": "Customer"}

The discovery engine only reads extras (``apply_extras``); writing them is
the operator's business.
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from .models import TableDescriptor

logger = logging.getLogger(__name__)

ExtrasRecord = Dict[str, Any]

TABLE_KEYS = ("label", "plural", "name_field")


class SchemaExtrasStore(Protocol):
    """Storage for schema extras."""

    def get_extras_for_tables(self, table_names: Iterable[str], include_fields: bool = True) -> List[ExtrasRecord]: ...

    def get_extras_for_fields(self, table_name: str, field_names: Optional[Iterable[str]] = None) -> List[ExtrasRecord]: ...

    def set_extras(self, records: Iterable[ExtrasRecord]) -> None: ...

    def remove_extras_for_tables(self, table_names: Iterable[str]) -> None: ...

    def remove_extras_for_fields(self, table_name: str, field_names: Iterable[str]) -> None: ...


def _key(record: ExtrasRecord):
    return (str(record.get("table") or "").lower(), str(record.get("field") or "").lower())


class InMemorySchemaExtras:
    """Extras held in a dict keyed by lower-cased (table, field)."""

    def __init__(self, records: Optional[Iterable[ExtrasRecord]] = None):
        self._records: Dict[tuple, ExtrasRecord] = {}
        if records:
            self.set_extras(records)

    @property
    def records(self) -> List[ExtrasRecord]:
        return [dict(r) for r in self._records.values()]

    def get_extras_for_tables(self, table_names: Iterable[str], include_fields: bool = True) -> List[ExtrasRecord]:
        wanted = {name.lower() for name in table_names}
        return [
            dict(record) for (table, field), record in self._records.items()
            if table in wanted and (include_fields or not field)
        ]

    def get_extras_for_fields(self, table_name: str, field_names: Optional[Iterable[str]] = None) -> List[ExtrasRecord]:
        table_name = table_name.lower()
        wanted = None if field_names is None else {name.lower() for name in field_names}
        return [
            dict(record) for (table, field), record in self._records.items()
            if table == table_name and field and (wanted is None or field in wanted)
        ]

    def set_extras(self, records: Iterable[ExtrasRecord]) -> None:
        """Insert or merge records; later values win per key."""
        for record in records:
            if not record.get("table"):
                logger.warning("Ignoring schema extras record without a table: %s", record)
                continue
            key = _key(record)
            merged = dict(self._records.get(key, {}))
            merged.update(record)
            merged.setdefault("field", "")
            self._records[key] = merged

    def remove_extras_for_tables(self, table_names: Iterable[str]) -> None:
        doomed = {name.lower() for name in table_names}
        for key in [k for k in self._records if k[0] in doomed]:
            del self._records[key]

    def remove_extras_for_fields(self, table_name: str, field_names: Iterable[str]) -> None:
        table_name = table_name.lower()
        for field in field_names:
            self._records.pop((table_name, field.lower()), None)


class JsonFileSchemaExtras(InMemorySchemaExtras):
    """Extras persisted as a JSON list of records."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        records = []
        if self.path.exists():
            with open(self.path, encoding="utf-8") as f:
                records = json.load(f)
        super().__init__()
        InMemorySchemaExtras.set_extras(self, records)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.records, f, indent=2)

    def set_extras(self, records: Iterable[ExtrasRecord]) -> None:
        super().set_extras(records)
        self.save()

    def remove_extras_for_tables(self, table_names: Iterable[str]) -> None:
        super().remove_extras_for_tables(table_names)
        self.save()

    def remove_extras_for_fields(self, table_name: str, field_names: Iterable[str]) -> None:
        super().remove_extras_for_fields(table_name, field_names)
        self.save()


def apply_extras(table: TableDescriptor, store: SchemaExtrasStore) -> TableDescriptor:
    """Return a copy of ``table`` with label overrides from ``store`` merged in.

    Neither the descriptor nor the store is modified.
    """
    table_updates: Dict[str, Any] = {}
    columns = dict(table.columns)
    by_lower = {name.lower(): name for name in columns}

    for record in store.get_extras_for_tables([table.display_name], include_fields=True):
        field = record.get("field") or ""
        if not field:
            table_updates.update({k: record[k] for k in TABLE_KEYS if record.get(k)})
            continue
        name = by_lower.get(field.lower())
        if name is not None and record.get("label"):
            columns[name] = replace(columns[name], label=record["label"])

    return replace(table, columns=columns, **table_updates)

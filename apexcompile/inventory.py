"""Inventory of the classes and triggers a run compiles."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from apexcompile.namespace import namespace_filter
from apexcompile.schemas import CompilationUnit, UnitKind
from apexcompile.tooling.client import ToolingClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Inventory:
    """Units fetched once at the start of a run, each list ordered by name."""
    classes: list[CompilationUnit] = field(default_factory=list)
    triggers: list[CompilationUnit] = field(default_factory=list)

    @property
    def units(self) -> list[CompilationUnit]:
        return [*self.classes, *self.triggers]

    @property
    def total(self) -> int:
        return len(self.classes) + len(self.triggers)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def of_kind(self, kind: UnitKind) -> list[CompilationUnit]:
        return self.classes if kind is UnitKind.CLASS else self.triggers


def build_inventory_query(kind: UnitKind, namespace: Optional[str] = None) -> str:
    """SOQL for one kind of unit; Body is selected so it can be resubmitted."""
    return f"SELECT Id, Name, Body FROM {kind.value} {namespace_filter(namespace)} ORDER BY Name"


def _inventory(class_records: list[dict], trigger_records: list[dict]) -> Inventory:
    inventory = Inventory(
        classes=[CompilationUnit.from_record(r, UnitKind.CLASS) for r in class_records],
        triggers=[CompilationUnit.from_record(r, UnitKind.TRIGGER) for r in trigger_records],
    )
    logger.info(
        f"Found {len(inventory.classes)} classes and {len(inventory.triggers)} triggers",
        extra={
            "event": "inventory_fetched",
            "metadata": {"classes": len(inventory.classes), "triggers": len(inventory.triggers)},
        },
    )
    return inventory


def fetch_inventory(client: ToolingClient, namespace: Optional[str] = None) -> Inventory:
    """
    Fetch classes then triggers.

    Raises:
        RemoteQueryError: If either query fails
    """
    return _inventory(
        client.query(build_inventory_query(UnitKind.CLASS, namespace)),
        client.query(build_inventory_query(UnitKind.TRIGGER, namespace)),
    )


async def fetch_inventory_async(client: ToolingClient, namespace: Optional[str] = None) -> Inventory:
    classes = await client.query_async(build_inventory_query(UnitKind.CLASS, namespace))
    triggers = await client.query_async(build_inventory_query(UnitKind.TRIGGER, namespace))
    return _inventory(classes, triggers)

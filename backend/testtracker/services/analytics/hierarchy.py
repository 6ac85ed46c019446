from typing import Any, Dict, Iterable, List, Optional
from testtracker.models.hierarchy import CellGroup, CellTypeGroup, ScopeGroup
from testtracker.models.testcase import TestCaseRecord, coerce_record

UNKNOWN = "Unknown"


def _bucket_name(value: Optional[str]) -> str:
    value = (value or "").strip()
    return value or UNKNOWN


def _first_cell_order(record: TestCaseRecord):
    return (record.test_case or "", record.test_id or "")


def build_hierarchy(records: Optional[Iterable[Any]]) -> List[CellTypeGroup]:
    """
    Group a flat record list into Cell Type -> Cell (or first-cell bucket).

    Records with ``cells == "First"`` are tested once per cell type, so they
    only land in ``first_cell_test_cases`` and only touch the cell-type
    counters. Everything else is placed under its cell and counted at both
    levels. Missing names fall back to "Unknown"; unknown statuses count as
    not run. Cell types and cells come out sorted by name and the first-cell
    bucket by test case name, so the result does not depend on input order.
    """
    groups: Dict[str, CellTypeGroup] = {}

    for raw in records or []:
        record = coerce_record(raw)
        cell_type = _bucket_name(record.cell_type)

        group = groups.get(cell_type)
        if group is None:
            group = groups[cell_type] = CellTypeGroup(cell_type=cell_type)

        group.total_test_cases += 1
        group.count(record.status)

        if record.is_first_cell:
            group.first_cell_test_cases.append(record)
            continue

        cell_name = _bucket_name(record.cell)
        cell_group = group.cells.get(cell_name)
        if cell_group is None:
            cell_group = group.cells[cell_name] = CellGroup(cell_name=cell_name)
        cell_group.test_cases.append(record)
        cell_group.count(record.status)

    result = []
    for cell_type in sorted(groups):
        group = groups[cell_type]
        group.cells = {name: group.cells[name] for name in sorted(group.cells)}
        group.first_cell_test_cases.sort(key=_first_cell_order)
        result.append(group)
    return result


def group_by_scope(test_cases: Optional[Iterable[Any]]) -> List[ScopeGroup]:
    """Partition one cell's test cases by scope, sorted by scope name."""
    scopes: Dict[str, ScopeGroup] = {}
    for raw in test_cases or []:
        record = coerce_record(raw)
        scope = _bucket_name(record.scope)
        group = scopes.get(scope)
        if group is None:
            group = scopes[scope] = ScopeGroup(scope=scope)
        group.test_cases.append(record)
        group.count(record.status)
    return [scopes[name] for name in sorted(scopes)]

from enum import Enum
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class Status(str, Enum):
    NOT_RUN = "NOT RUN"
    PASS = "PASS"
    FAIL = "FAIL"
    BLOCKED = "BLOCKED"
    NA = "NA"


class CellsMode(str, Enum):
    ALL = "All"
    FIRST = "First"
    SYSTEM = "System"


class RecordKind(str, Enum):
    REGULAR = "regular"
    HARDENING = "hardening"
    VOLUME = "volume"


AUX_FIELDS: Tuple[str, ...] = ("volume", "date", "start_time", "end_time", "availability")

# Auxiliary fields a record of each kind carries
KIND_FIELDS: Dict[RecordKind, Tuple[str, ...]] = {
    RecordKind.REGULAR: (),
    RecordKind.HARDENING: ("volume", "date"),
    RecordKind.VOLUME: ("volume", "start_time", "end_time", "availability"),
}

COMMON_FIELDS: Tuple[str, ...] = ("status", "note")


def classify_kind(test_id: Optional[str], scope: Optional[str]) -> RecordKind:
    test_id = (test_id or "").strip().upper()
    scope = (scope or "").strip().lower()
    if test_id.startswith("CH-") or scope == "hardening":
        return RecordKind.HARDENING
    if test_id.startswith("VT-") or scope == "volume":
        return RecordKind.VOLUME
    return RecordKind.REGULAR


class TestCaseDefinition(BaseModel):
    """A row of the test case catalogue, before it is bound to a site."""

    __test__ = False
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    cell_type: str = ""
    test_case: str = ""
    test_id: str = ""
    scope: str = ""
    phase: str = ""
    cells: str = CellsMode.ALL.value


class TestCaseRecord(BaseModel):
    """One test case as currently known for a site + phase + cell."""

    __test__ = False
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    test_id: str = ""
    unique_test_id: str = ""
    test_case: str = ""
    site: Optional[str] = None
    phase: Optional[str] = None
    cell_type: Optional[str] = None
    cell: Optional[str] = None
    scope: Optional[str] = None
    cells: str = CellsMode.ALL.value
    status: str = Status.NOT_RUN.value
    note: str = ""

    # Auxiliary measurements, meaningful depending on `kind`
    volume: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    availability: str = ""

    last_modified: Optional[str] = None
    modified_user: Optional[str] = None

    kind: RecordKind = RecordKind.REGULAR

    @model_validator(mode="after")
    def _resolve_kind(self) -> "TestCaseRecord":
        self.kind = classify_kind(self.test_id, self.scope)
        return self

    @property
    def editable_fields(self) -> Tuple[str, ...]:
        return COMMON_FIELDS + KIND_FIELDS[self.kind]

    @property
    def is_first_cell(self) -> bool:
        return self.cells == CellsMode.FIRST.value


_RECORD_FIELDS = [name for name in TestCaseRecord.model_fields if name != "kind"]


def coerce_record(obj: Any) -> TestCaseRecord:
    """
    Turn whatever upstream handed us into a TestCaseRecord without raising.
    Accepts records, mappings with camelCase or snake_case keys, or junk.
    """
    if isinstance(obj, TestCaseRecord):
        return obj
    if not isinstance(obj, Mapping):
        obj = getattr(obj, "__dict__", None) or {}

    data: Dict[str, Any] = {}
    for name in _RECORD_FIELDS:
        value = obj.get(name)
        if value is None:
            value = obj.get(to_camel(name))
        if value is None:
            continue
        data[name] = value if isinstance(value, str) else str(value)
    return TestCaseRecord(**data)

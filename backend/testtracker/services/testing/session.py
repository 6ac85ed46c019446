from typing import Any, Dict, List, Optional

import httpx

from testtracker.core.exceptions import InvalidFieldError, RecordNotFoundError
from testtracker.core.logging import get_logger
from testtracker.models.hierarchy import CellTypeGroup, ScopeGroup
from testtracker.models.testcase import Status, TestCaseRecord
from testtracker.services.analytics.hierarchy import UNKNOWN, build_hierarchy, group_by_scope
from testtracker.services.client.api_client import TestTrackerClient
from testtracker.services.testing.notifications import Notifier
from testtracker.services.updater.debounce import DebouncedFieldUpdater

logger = get_logger("testing_session")

_STATUSES = {s.value for s in Status}


class TestingSession:
    """
    State behind the Testing view for one site/phase.

    Holds the loaded records keyed by ``uniqueTestId``, applies edits
    optimistically and hands the network writes to the debounced updater.
    """

    __test__ = False

    def __init__(
        self,
        client: TestTrackerClient,
        updater: Optional[DebouncedFieldUpdater] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.updater = updater or DebouncedFieldUpdater()
        if self.updater.on_error is None:
            self.updater.on_error = self.notifier.error
        self.site: Optional[str] = None
        self.phase: Optional[str] = None
        self._records: Dict[str, TestCaseRecord] = {}
        self._groups: Optional[List[CellTypeGroup]] = None

    async def load(self, site: str, phase: Optional[str] = None) -> List[CellTypeGroup]:
        try:
            records = await self.client.test_cases.get_by_site(site, phase)
        except httpx.HTTPError as e:
            logger.error(f"Error loading test cases for {site}/{phase}: {e}")
            self.notifier.error(f"Failed to load test cases for site {site}")
            raise

        self.site, self.phase = site, phase
        self._records = {r.unique_test_id: r for r in records}
        self._groups = None
        if not records:
            self.notifier.warning(f"No test cases found for site: {site}")
        logger.info(f"Loaded {len(records)} records for {site}/{phase}")
        return self.hierarchy()

    @property
    def records(self) -> List[TestCaseRecord]:
        return list(self._records.values())

    def get_record(self, record_key: str) -> Optional[TestCaseRecord]:
        return self._records.get(record_key)

    def hierarchy(self) -> List[CellTypeGroup]:
        if self._groups is None:
            self._groups = build_hierarchy(self._records.values())
        return self._groups

    def scopes(self, cell_type: str, cell: str) -> List[ScopeGroup]:
        for group in self.hierarchy():
            if group.cell_type == (cell_type or UNKNOWN):
                cell_group = group.cells.get(cell or UNKNOWN)
                return group_by_scope(cell_group.test_cases) if cell_group else []
        return []

    def set_field(self, record_key: str, field_name: str, value: Any) -> TestCaseRecord:
        record = self._records.get(record_key)
        if record is None:
            raise RecordNotFoundError(record_key)
        if field_name not in record.editable_fields:
            raise InvalidFieldError(f"{field_name} is not editable for {record.kind.value} test {record.test_id}")
        if field_name == "status" and value not in _STATUSES:
            raise InvalidFieldError(f"Invalid status: {value}")

        value = "" if value is None else str(value)
        updated = record.model_copy(update={field_name: value})
        self._records[record_key] = updated
        self._groups = None

        if field_name == "note":
            write_fn = self._write_note
        else:
            write_fn = self.client.test_status.update_status
        self.updater.schedule(record_key, field_name, value, write_fn, self.get_record)
        return updated

    def set_status(self, record_key: str, status: str) -> TestCaseRecord:
        return self.set_field(record_key, "status", status)

    def set_note(self, record_key: str, note: str) -> TestCaseRecord:
        return self.set_field(record_key, "note", note)

    async def _write_note(self, unique_test_id: str, fields: Dict[str, Any]):
        return await self.client.test_status.update_note(unique_test_id, fields["note"])

    async def aclose(self) -> None:
        await self.updater.aclose()

import os
import re
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from testtracker.core.config import settings
from testtracker.core.exceptions import (
    DataFileNotFoundError,
    InvalidFieldError,
    RecordNotFoundError,
    SiteConfigurationError,
)
from testtracker.core.logging import get_logger
from testtracker.models.testcase import (
    AUX_FIELDS,
    CellsMode,
    Status,
    TestCaseDefinition,
    TestCaseRecord,
)

logger = get_logger("excel_store")

# Spreadsheet header -> model field
TEST_CASE_COLUMNS = {
    "Cell Type": "cell_type",
    "Test Case": "test_case",
    "Test ID": "test_id",
    "Scope": "scope",
    "Phase": "phase",
    "Cells": "cells",
}

STATUS_COLUMNS = {
    "Site": "site",
    "Phase": "phase",
    "Cell Type": "cell_type",
    "Cell": "cell",
    "Test Case": "test_case",
    "Test ID": "test_id",
    "Unique Test ID": "unique_test_id",
    "Scope": "scope",
    "Cells": "cells",
    "Status": "status",
    "Notes": "note",
    "Volume": "volume",
    "Date": "date",
    "Start Time": "start_time",
    "End Time": "end_time",
    "Availability": "availability",
    "Last modified": "last_modified",
    "Modified User": "modified_user",
}

RESULT_COLUMNS = {
    "Cell Type": "cell_type",
    "Cell": "cell",
    "Test Case": "test_case",
    "Test ID": "test_id",
    "Status": "status",
    "Phase": "phase",
    "Last Modified": "last_modified",
    "Modified User": "modified_user",
}

CELL_ID_BASES = {"A": 100, "B": 200, "C": 300, "D": 400, "MCP": 500}

_VALID_STATUSES = {s.value for s in Status}
_WRITABLE_FIELDS = {"status", "note", *AUX_FIELDS}


def make_unique_test_id(site: Optional[str], phase: Optional[str], cell: Optional[str], test_id: Optional[str]) -> str:
    raw = f"{site or ''}_{phase or ''}_{cell or ''}_{test_id or ''}"
    return re.sub(r"\s+", "_", raw.strip())


def _id_cell(cell_type: Optional[str], cell: Optional[str]) -> Optional[str]:
    # System rows share the cell name "System" across cell types
    if cell == CellsMode.SYSTEM.value:
        return f"{cell_type or ''}_{cell}"
    return cell or cell_type


def generate_cell_ids(cell_type: str, quantity: int) -> List[str]:
    base = CELL_ID_BASES.get(cell_type)
    if base is None:
        base = ord(cell_type[0]) * 100 if cell_type else 0
    return [f"{cell_type}{base + i + 1}" for i in range(quantity)]


def _phase_matches(definition: TestCaseDefinition, phase: str) -> bool:
    if not definition.phase:
        return True
    return phase in [p.strip() for p in definition.phase.split(",")]


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class ExcelStore:
    """
    Test catalogue and test status kept in two workbooks.

    Every mutation reads the whole status sheet, changes it in memory and
    writes it back.
    """

    def __init__(self, data_dir: Optional[str] = None, results_dir: Optional[str] = None):
        self.data_dir = data_dir or settings.DATA_DIR
        self.results_dir = results_dir or settings.RESULTS_DIR
        self._lock = threading.RLock()

    @property
    def test_cases_path(self) -> str:
        return os.path.join(self.data_dir, settings.TEST_CASES_FILE)

    @property
    def test_status_path(self) -> str:
        return os.path.join(self.data_dir, settings.TEST_STATUS_FILE)

    def _read_sheet(self, path: str, columns: Dict[str, str]) -> List[Dict[str, str]]:
        df = pd.read_excel(path, sheet_name=0, dtype=str).fillna("")
        rows = []
        for _, row in df.iterrows():
            rows.append({field: str(row.get(header, "")).strip() for header, field in columns.items()})
        return rows

    def read_test_cases(self) -> List[TestCaseDefinition]:
        path = self.test_cases_path
        if not os.path.exists(path):
            raise DataFileNotFoundError(f"{settings.TEST_CASES_FILE} not found in data folder")
        rows = self._read_sheet(path, TEST_CASE_COLUMNS)
        definitions = []
        for row in rows:
            if not row["test_case"] and not row["test_id"]:
                continue
            row["cells"] = row["cells"] or CellsMode.ALL.value
            definitions.append(TestCaseDefinition(**row))
        logger.info(f"Read {len(definitions)} test cases from {path}")
        return definitions

    def read_test_status(self) -> List[TestCaseRecord]:
        path = self.test_status_path
        if not os.path.exists(path):
            return []
        return [self._row_to_record(row) for row in self._read_sheet(path, STATUS_COLUMNS)]

    def _row_to_record(self, row: Dict[str, str]) -> TestCaseRecord:
        data: Dict[str, Any] = dict(row)
        data["status"] = row["status"] or Status.NOT_RUN.value
        data["cells"] = row["cells"] or CellsMode.ALL.value
        data["cell"] = row["cell"] or None
        data["last_modified"] = row["last_modified"] or None
        data["modified_user"] = row["modified_user"] or None
        if not row["unique_test_id"]:
            data["unique_test_id"] = make_unique_test_id(
                row["site"], row["phase"], _id_cell(row["cell_type"], row["cell"]), row["test_id"]
            )
        return TestCaseRecord(**data)

    def write_test_status(self, records: List[TestCaseRecord]) -> None:
        os.makedirs(self.data_dir, exist_ok=True)
        rows = [
            {header: getattr(r, field) or "" for header, field in STATUS_COLUMNS.items()}
            for r in records
        ]
        df = pd.DataFrame(rows, columns=list(STATUS_COLUMNS))
        df.to_excel(self.test_status_path, index=False, sheet_name="Sheet1")
        logger.info(f"Updated {settings.TEST_STATUS_FILE} with {len(records)} entries")

    def list_cell_types(self) -> List[str]:
        seen = []
        for definition in self.read_test_cases():
            if definition.cell_type and definition.cell_type not in seen:
                seen.append(definition.cell_type)
        return seen

    def list_sites(self) -> Dict[str, List[str]]:
        sites: Dict[str, set] = {}
        for record in self.read_test_status():
            if not record.site:
                continue
            phases = sites.setdefault(record.site, set())
            if record.phase:
                phases.add(record.phase)
        return {site: sorted(phases) for site, phases in sorted(sites.items())}

    def get_by_site(self, site: str, phase: Optional[str] = None) -> List[TestCaseRecord]:
        return [
            r for r in self.read_test_status()
            if r.site == site and (phase is None or r.phase == phase)
        ]

    def update_fields(self, unique_test_id: str, fields: Dict[str, Any], modified_user: Optional[str] = None) -> TestCaseRecord:
        if not fields:
            raise InvalidFieldError("No fields to update")
        unknown = set(fields) - _WRITABLE_FIELDS
        if unknown:
            raise InvalidFieldError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if "status" in fields and fields["status"] not in _VALID_STATUSES:
            raise InvalidFieldError(f"Invalid status: {fields['status']}")

        with self._lock:
            records = self.read_test_status()
            for idx, record in enumerate(records):
                if record.unique_test_id != unique_test_id:
                    continue
                not_editable = set(fields) - set(record.editable_fields)
                if not_editable:
                    raise InvalidFieldError(
                        f"Fields not editable for {record.kind.value} test {record.test_id}: {', '.join(sorted(not_editable))}"
                    )
                changes = {k: "" if v is None else str(v) for k, v in fields.items()}
                changes["last_modified"] = _now()
                changes["modified_user"] = modified_user or settings.DEFAULT_USER
                updated = record.model_copy(update=changes)
                records[idx] = updated
                logger.info(f"Updating {unique_test_id}: {sorted(fields)}")
                self.write_test_status(records)
                return updated

        logger.warning(f"Test ID not found: {unique_test_id}")
        raise RecordNotFoundError(unique_test_id)

    def update_note(self, unique_test_id: str, note: str, modified_user: Optional[str] = None) -> TestCaseRecord:
        return self.update_fields(unique_test_id, {"note": note or ""}, modified_user)

    def configure_site(self, site: str, phase: str, machines: List[Dict[str, Any]], user: Optional[str] = None) -> Dict[str, Any]:
        if not site or not phase:
            raise SiteConfigurationError("Site and phase are required")
        if not machines:
            raise SiteConfigurationError("At least one machine type is required")

        definitions = self.read_test_cases()
        user = user or settings.DEFAULT_USER
        stamp = _now()

        with self._lock:
            existing = self.read_test_status()
            if any(r.site == site and r.phase == phase for r in existing):
                raise SiteConfigurationError(f"Site {site} - {phase} is already configured")

            new_records: List[TestCaseRecord] = []
            for machine in machines:
                cell_type = str(machine.get("type") or "").strip()
                quantity = int(machine.get("quantity") or 0)
                if not cell_type or quantity <= 0:
                    raise SiteConfigurationError(f"Invalid machine entry: {machine}")

                relevant = [d for d in definitions if d.cell_type == cell_type and _phase_matches(d, phase)]
                cell_ids = generate_cell_ids(cell_type, quantity)
                logger.info(f"Site {site}: {cell_type} x {quantity}, {len(relevant)} test cases")

                for definition in relevant:
                    if definition.cells == CellsMode.FIRST.value:
                        cells: List[Optional[str]] = [None]
                    elif definition.cells == CellsMode.SYSTEM.value:
                        cells = [CellsMode.SYSTEM.value]
                    else:
                        cells = list(cell_ids)
                    for cell in cells:
                        new_records.append(TestCaseRecord(
                            site=site,
                            phase=phase,
                            cell_type=cell_type,
                            cell=cell,
                            test_case=definition.test_case,
                            test_id=definition.test_id,
                            unique_test_id=make_unique_test_id(site, phase, _id_cell(cell_type, cell), definition.test_id),
                            scope=definition.scope,
                            cells=definition.cells,
                            status=Status.NOT_RUN.value,
                            last_modified=stamp,
                            modified_user=user,
                        ))

            self.write_test_status(existing + new_records)

        return {
            "site": site,
            "phase": phase,
            "entriesCreated": len(new_records),
            "machines": [{"type": m.get("type"), "quantity": m.get("quantity")} for m in machines],
        }

    def save_test_results(self, site: str, phase: Optional[str], submitted_by: Optional[str] = None) -> Dict[str, Any]:
        records = self.get_by_site(site, phase)
        if not records:
            raise SiteConfigurationError(f"No test status found for site {site}")

        passed = sum(1 for r in records if r.status == Status.PASS.value)
        submitted_at = datetime.now()
        summary = {
            "submissionId": str(uuid.uuid4()),
            "site": site,
            "phase": phase,
            "submittedBy": submitted_by or settings.DEFAULT_USER,
            "submittedAt": submitted_at.isoformat(timespec="seconds"),
            "totalTests": len(records),
            "passedTests": passed,
            "passRate": f"{round(passed / len(records) * 100)}%",
        }

        os.makedirs(self.results_dir, exist_ok=True)
        file_name = f"test_results_{site}_{submitted_at.strftime('%Y-%m-%dT%H-%M-%S-%f')}.xlsx"
        path = os.path.join(self.results_dir, file_name)

        results_df = pd.DataFrame(
            [{header: getattr(r, field) or "" for header, field in RESULT_COLUMNS.items()} for r in records],
            columns=list(RESULT_COLUMNS),
        )
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame([summary]).to_excel(writer, index=False, sheet_name="Submission")
            results_df.to_excel(writer, index=False, sheet_name="Test Results")

        logger.info(f"Test results saved to: {file_name}")
        summary["fileName"] = file_name
        return summary


excel_store = ExcelStore()


def get_store() -> ExcelStore:
    return excel_store

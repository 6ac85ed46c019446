from typing import Any, Dict, List, Optional
from testtracker.models.testcase import RecordKind, TestCaseRecord

NOT_STARTED = "NOT STARTED"
IN_PROGRESS = "IN PROGRESS"
COMPLETED = "COMPLETED"


def _volume(value: Optional[str]) -> Optional[float]:
    try:
        return float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        return None


class HardeningService:
    """Read-only views over the hardening records of the status sheet."""

    def select(
        self,
        records: List[TestCaseRecord],
        site: Optional[str] = None,
        cell_type: Optional[str] = None,
        cell: Optional[str] = None,
    ) -> List[TestCaseRecord]:
        return [
            r for r in records
            if r.kind == RecordKind.HARDENING
            and (site is None or r.site == site)
            and (cell_type is None or r.cell_type == cell_type)
            and (cell is None or r.cell == cell)
        ]

    def entries(self, records: List[TestCaseRecord], **filters) -> List[Dict[str, Any]]:
        return [
            {
                "site": r.site,
                "phase": r.phase,
                "cellType": r.cell_type,
                "cell": r.cell,
                "uniqueTestId": r.unique_test_id,
                "testId": r.test_id,
                "testCase": r.test_case,
                "volume": r.volume,
                "date": r.date,
                "status": r.status,
                "note": r.note,
            }
            for r in self.select(records, **filters)
        ]

    def summarize(self, records: List[TestCaseRecord], **filters) -> List[Dict[str, Any]]:
        grouped: Dict[tuple, List[TestCaseRecord]] = {}
        for r in self.select(records, **filters):
            grouped.setdefault((r.site or "", r.cell_type or "", r.cell or ""), []).append(r)

        summaries = []
        for (site, cell_type, cell), rows in sorted(grouped.items()):
            volumes = [v for v in (_volume(r.volume) for r in rows) if v is not None]
            dates = sorted({r.date for r in rows if r.date})
            complete = sum(1 for r in rows if r.volume and r.date)
            touched = any(r.volume or r.date for r in rows)

            if complete == len(rows):
                hardening_status = COMPLETED
            elif touched:
                hardening_status = IN_PROGRESS
            else:
                hardening_status = NOT_STARTED

            total = sum(volumes)
            summaries.append({
                "site": site,
                "cellType": cell_type,
                "cell": cell or None,
                "hardeningStatus": hardening_status,
                "entryCount": len(rows),
                "recordedCount": complete,
                "totalVolume": total,
                "averageVolume": round(total / len(volumes)) if volumes else 0,
                "datesRecorded": dates,
                "firstDate": dates[0] if dates else None,
                "lastDate": dates[-1] if dates else None,
            })
        return summaries

hardening_service = HardeningService()

from typing import List, Dict, Any, Iterable
from testtracker.models.testcase import Status, TestCaseRecord
from collections import Counter, defaultdict

_KNOWN = {s.value for s in Status}


def _normalized(status: str) -> str:
    return status if status in _KNOWN else Status.NOT_RUN.value


class StatsService:
    def compute_stats(self, records: List[TestCaseRecord]) -> Dict[str, Any]:
        total = len(records)
        result_counts = Counter(_normalized(r.status) for r in records)

        pass_count = result_counts.get(Status.PASS.value, 0)
        fail_count = result_counts.get(Status.FAIL.value, 0)
        completed = pass_count + fail_count

        # Completion counts decided tests only; BLOCKED and NA are not "done"
        completion_rate = round(completed / total * 100) if total > 0 else 0
        pass_rate = round(pass_count / completed * 100) if completed > 0 else 0

        overall = {
            "totalTests": total,
            "passCount": pass_count,
            "failCount": fail_count,
            "blockedCount": result_counts.get(Status.BLOCKED.value, 0),
            "naCount": result_counts.get(Status.NA.value, 0),
            "notRunCount": result_counts.get(Status.NOT_RUN.value, 0),
            "completionRate": completion_rate,
            "passRate": pass_rate,
        }

        return {
            "overall": overall,
            "grouped": {
                "bySite": self._group(records, lambda r: r.site),
                "byPhase": self._group(records, lambda r: r.phase),
                "byCellType": self._group(records, lambda r: r.cell_type),
            },
        }

    def _group(self, records: Iterable[TestCaseRecord], key) -> Dict[str, Dict[str, int]]:
        grouped: Dict[str, Dict[str, int]] = defaultdict(lambda: {"total": 0, "passed": 0, "failed": 0, "notRun": 0})
        for r in records:
            bucket = grouped[key(r) or "Unknown"]
            bucket["total"] += 1
            if r.status == Status.PASS.value:
                bucket["passed"] += 1
            elif r.status == Status.FAIL.value:
                bucket["failed"] += 1
            else:
                bucket["notRun"] += 1
        return dict(grouped)

stats_service = StatsService()

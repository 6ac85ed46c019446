from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from testtracker.models.testcase import Status, TestCaseRecord


class StatusCounts(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    passed_count: int = 0
    failed_count: int = 0
    blocked_count: int = 0
    not_run_count: int = 0
    na_count: int = 0

    def count(self, status) -> None:
        # Exactly one counter per record; anything unrecognised is "not run"
        if status == Status.PASS.value:
            self.passed_count += 1
        elif status == Status.FAIL.value:
            self.failed_count += 1
        elif status == Status.BLOCKED.value:
            self.blocked_count += 1
        elif status == Status.NA.value:
            self.na_count += 1
        else:
            self.not_run_count += 1

    @property
    def counted(self) -> int:
        return self.passed_count + self.failed_count + self.blocked_count + self.not_run_count + self.na_count


class ScopeGroup(StatusCounts):
    scope: str
    test_cases: List[TestCaseRecord] = Field(default_factory=list)


class CellGroup(StatusCounts):
    cell_name: str
    test_cases: List[TestCaseRecord] = Field(default_factory=list)


class CellTypeGroup(StatusCounts):
    cell_type: str
    cells: Dict[str, CellGroup] = Field(default_factory=dict)
    first_cell_test_cases: List[TestCaseRecord] = Field(default_factory=list)
    total_test_cases: int = 0

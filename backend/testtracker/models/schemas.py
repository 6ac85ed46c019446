from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from testtracker.models.testcase import Status, TestCaseRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldUpdateRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Optional[Status] = None
    note: Optional[str] = None
    volume: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    availability: Optional[str] = None
    modified_user: Optional[str] = None

    def changed_fields(self) -> dict:
        fields = self.model_dump(exclude_unset=True, exclude={"modified_user"})
        if "status" in fields and fields["status"] is not None:
            fields["status"] = Status(fields["status"]).value
        return fields


class NoteUpdateRequest(CamelModel):
    note: str = ""
    modified_user: Optional[str] = None


class StatusUpdateResponse(CamelModel):
    success: bool
    message: Optional[str] = None
    data: Optional[TestCaseRecord] = None


class MachineSpec(CamelModel):
    type: str
    quantity: int = Field(ge=1)


class SiteSetupRequest(CamelModel):
    site_number: str
    phase: str
    machines: List[MachineSpec]
    user: Optional[str] = None


class SubmitResultsRequest(CamelModel):
    site: str
    phase: Optional[str] = None
    submitted_by: Optional[str] = None


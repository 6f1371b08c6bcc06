import uuid
import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class FeederReportRequest(BaseModel):
    feeder_ids: list[uuid.UUID] = Field(min_length=1)
    start_date: datetime.date
    end_date: datetime.date
    include_analysis: bool = True


class EmailReportRequest(BaseModel):
    recipients: list[EmailStr] = Field(min_length=1)
    date: datetime.date | None = None
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    region: str | None = Field(default=None, max_length=255)
    business_hub: str | None = Field(default=None, max_length=255)
    report_type: str | None = Field(default=None, max_length=100)
    include_analysis: bool = True

    @field_validator("recipients", mode="before")
    @classmethod
    def split_recipients(cls, value):
        # Accept "a@x.com, b@y.com" as well as a JSON list
        if isinstance(value, str):
            return [r.strip() for r in value.split(",") if r.strip()]
        return value

    @model_validator(mode="after")
    def require_window(self) -> "EmailReportRequest":
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be given together")
        if self.start_date is None and self.date is None:
            raise ValueError("start_date/end_date or date is required")
        return self

    def window(self) -> tuple[datetime.date, datetime.date]:
        if self.start_date is not None and self.end_date is not None:
            return self.start_date, self.end_date
        return self.date, self.date


class EmailReportResponse(BaseModel):
    message: str
    filename: str
    recipients: list[str]
    feeder_count: int
    failed_count: int
    insufficient_count: int

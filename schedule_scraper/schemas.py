from datetime import date

from pydantic import BaseModel, Field, ValidationError, field_validator

from schedule_scraper.utils.timezone import DateFormatError, parse_schedule_date, date_range


class InputError(ValueError):
    """Raised when scrape input is invalid; nothing has been fetched yet"""
    pass


class ScrapeRequest(BaseModel):
    """Schedule scrape request"""
    start_date: str = Field(..., description="First date to scrape (yyyy-MM-dd)")
    end_date: str | None = Field(None, description="Last date to scrape (yyyy-MM-dd); defaults to today")
    channel: str = Field(..., description="Channel slug as used by the schedule site (e.g., 'btv1')")
    search_term: str | None = Field(None, description="Optional case-insensitive filter")

    @field_validator('start_date')
    @classmethod
    def validate_start_date(cls, v: str) -> str:
        """Validate yyyy-MM-dd format using centralized parser"""
        try:
            parse_schedule_date(v)
            return v
        except DateFormatError:
            raise ValueError("Date is invalid or in an invalid format (not yyyy-MM-dd).")

    @field_validator('end_date')
    @classmethod
    def validate_end_date(cls, v: str | None) -> str | None:
        """Blank end date means today; otherwise validate like start_date"""
        if v is None or not v.strip():
            return None
        try:
            parse_schedule_date(v)
            return v
        except DateFormatError:
            raise ValueError("Date is invalid or in an invalid format (not yyyy-MM-dd).")

    @field_validator('channel')
    @classmethod
    def validate_channel(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Channel name must not be empty")
        return v.strip()

    @property
    def start(self) -> date:
        return parse_schedule_date(self.start_date)

    @property
    def end(self) -> date:
        return parse_schedule_date(self.end_date) if self.end_date else date.today()

    def dates(self) -> list[date]:
        return date_range(self.start, self.end)


def build_scrape_request(**fields) -> ScrapeRequest:
    """
    Validate raw input into a ScrapeRequest.

    Raises:
        InputError: If any field is invalid
    """
    try:
        return ScrapeRequest(**fields)
    except ValidationError as e:
        messages = "; ".join(error["msg"].removeprefix("Value error, ") for error in e.errors())
        raise InputError(messages) from e

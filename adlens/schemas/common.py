"""
Common schemas used across the API
"""
from datetime import date, timedelta
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, model_validator

T = TypeVar("T")


class ResponseBase(BaseModel):
    """Base response model"""
    success: bool = True
    message: Optional[str] = None


class DataResponse(ResponseBase, Generic[T]):
    """Response with data"""
    data: Optional[T] = None
    meta: Optional[Any] = None  # Additional metadata


class ListResponse(ResponseBase, Generic[T]):
    """
    Response with list data.

    On failure `success` is False, `data` is empty and `error` names the
    failure kind so the dashboard can render an empty widget with a notice.
    """
    data: List[T] = []
    total: int = 0
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response"""
    success: bool = False
    error: str
    detail: Optional[Any] = None


class DateRange(BaseModel):
    """Inclusive reporting date range"""
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    @classmethod
    def last_days(cls, days: int = 30, today: Optional[date] = None) -> "DateRange":
        end = today or date.today()
        return cls(start_date=end - timedelta(days=days - 1), end_date=end)

    def as_time_range(self) -> dict:
        """Graph API `time_range` value"""
        return {"since": self.start_date.isoformat(), "until": self.end_date.isoformat()}

    @property
    def cache_suffix(self) -> str:
        return f"{self.start_date.isoformat()}:{self.end_date.isoformat()}"

"""Scheduled report subscriptions."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class ReportType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass
class ReportSubscription:
    """A user's request to have one report type posted to a channel."""

    user_id: str
    username: str
    report_type: ReportType
    channel_id: int
    enabled: bool = True
    last_period: str | None = None  # key of the last period delivered
    created_at: datetime | None = None
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "report_type": self.report_type.value,
            "channel_id": self.channel_id,
            "enabled": self.enabled,
            "last_period": self.last_period,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
    ) -> "ReportSubscription":
        """Create from dictionary."""
        return cls(
            id=id,
            user_id=data["user_id"],
            username=data["username"],
            report_type=ReportType(data["report_type"]),
            channel_id=int(data["channel_id"]),
            enabled=bool(data.get("enabled", True)),
            last_period=data.get("last_period"),
            created_at=created_at,
        )


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime) -> datetime:
    """Midnight of the Sunday that starts ``moment``'s week."""
    day = start_of_day(moment)
    # datetime.weekday(): Monday=0; shift so the week starts on Sunday
    return day - timedelta(days=(day.weekday() + 1) % 7)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def next_month(moment: datetime) -> datetime:
    """First day of the month after ``moment``'s month."""
    first = start_of_month(moment)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)


def period_bounds(report_type: ReportType, moment: datetime) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` range of the period containing ``moment``."""
    if report_type is ReportType.DAILY:
        start = start_of_day(moment)
        return start, start + timedelta(days=1)
    if report_type is ReportType.WEEKLY:
        start = start_of_week(moment)
        return start, start + timedelta(days=7)
    return start_of_month(moment), next_month(moment)


def period_key(report_type: ReportType, moment: datetime) -> str:
    """Stable identifier of the period containing ``moment``."""
    start, _ = period_bounds(report_type, moment)
    if report_type is ReportType.MONTHLY:
        return start.strftime("%Y-%m")
    return start.date().isoformat()

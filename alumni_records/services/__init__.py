from .analytics import (
    annualize_salary,
    attendance_rate,
    can_rollback,
    duration_minutes,
    has_engaged,
    is_expired,
    percentage,
    salary_growth,
    success_rate,
    tracking_rate,
)

__all__ = [
    "annualize_salary",
    "attendance_rate",
    "can_rollback",
    "duration_minutes",
    "has_engaged",
    "is_expired",
    "percentage",
    "salary_growth",
    "success_rate",
    "tracking_rate",
]

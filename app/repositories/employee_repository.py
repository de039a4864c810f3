"""
Employee lookups needed by attendance: existence checks and the wage profile.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.employee import Employee


@dataclass(frozen=True)
class WageProfile:
    wage: Decimal
    overtime_rate: Decimal  # multiplier applied to wage

    @property
    def overtime_hourly_rate(self) -> Decimal:
        return self.wage * self.overtime_rate

    @classmethod
    def from_values(cls, wage: Optional[Decimal], overtime_rate: Optional[Decimal]) -> "WageProfile":
        """Unset (or zero) values fall back to the configured defaults."""
        return cls(
            wage=Decimal(wage) if wage else settings.DEFAULT_WAGE,
            overtime_rate=Decimal(overtime_rate) if overtime_rate else settings.DEFAULT_OVERTIME_RATE,
        )


def employee_exists(db: Session, employee_id: int, active_only: bool = True) -> bool:
    query = db.query(Employee.id).filter(Employee.id == employee_id)
    if active_only:
        query = query.filter(Employee.active.is_(True))
    return query.first() is not None


def get_wage_profile(db: Session, employee_id: int) -> WageProfile:
    row = db.query(Employee.wage, Employee.overtime_rate).filter(Employee.id == employee_id).first()
    if row is None:
        return WageProfile.from_values(None, None)
    return WageProfile.from_values(row.wage, row.overtime_rate)


def count_active_employees(db: Session) -> int:
    return db.query(Employee).filter(Employee.active.is_(True)).count()

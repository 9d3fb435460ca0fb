from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class HouseholdContext:
    household_id: str
    user_email: str
    now: datetime

    @property
    def today(self) -> date:
        return self.now.date()

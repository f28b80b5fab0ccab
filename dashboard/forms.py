# dashboard/forms.py
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

CERTIFICATE_TYPES = (
    "Degree Certificate",
    "Transcript",
    "Course Completion",
    "Participation",
    "Award",
    "Other",
)

USN_RE = re.compile(r'[a-zA-Z0-9]{6,20}')
MIN_GRADUATION_YEAR = 1950
MAX_YEARS_AHEAD = 10


class FormError(ValueError):
    """Raised with a user-facing message for the first invalid field."""


def validate_usn(usn) -> bool:
    return isinstance(usn, str) and bool(USN_RE.fullmatch(usn))


def validate_year(year, today: Optional[date] = None) -> bool:
    try:
        value = int(str(year).strip())
    except (TypeError, ValueError):
        return False
    current = (today or date.today()).year
    return MIN_GRADUATION_YEAR <= value <= current + MAX_YEARS_AHEAD


@dataclass
class RequestForm:
    organization_id: str = ""
    usn: str = ""
    year_of_graduation: str = ""
    certificate_type: str = ""

    def validate(self, today: Optional[date] = None) -> None:
        if not self.organization_id:
            raise FormError("Please select an organization.")
        if not self.usn or not validate_usn(self.usn):
            raise FormError("Please enter a valid USN (6-20 alphanumeric characters).")
        if not self.year_of_graduation or not validate_year(self.year_of_graduation, today):
            raise FormError("Please enter a valid graduation year (1950 to current+10).")
        if not self.certificate_type:
            raise FormError("Please select a certificate type.")

    @property
    def year(self) -> int:
        return int(str(self.year_of_graduation).strip())

    def clear(self) -> None:
        self.organization_id = ""
        self.usn = ""
        self.year_of_graduation = ""
        self.certificate_type = ""

"""
Deadline calendars: the dated milestones of one school year's evaluation cycle.

A calendar is pure data, loaded from a YAML file per school year
(compliance/calendars/<school-year>.yaml). Swapping school years or
districts means swapping the file, never touching the evaluator.
"""

import logging
from datetime import date
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from stafftrak.models import MeetingType, StaffCategory, StaffMember
from stafftrak.workflow.errors import StaffTrakError


logger = logging.getLogger(__name__)

CALENDAR_DIR = Path(__file__).parent / "calendars"


class CalendarError(StaffTrakError):
    """Raised when a calendar file is missing or malformed."""
    pass


class MilestoneKind(str, Enum):
    """What a milestone inspects to decide completion."""
    SELF_REFLECTION = "self_reflection"
    GOALS_APPROVED = "goals_approved"
    MEETING = "meeting"
    OBSERVATIONS = "observations"
    SUMMATIVE = "summative"


class CompliancePolicy(BaseModel):
    """Required counts for the count-based milestones."""
    required_goals: Dict[StaffCategory, int] = Field(default_factory=lambda: {
        StaffCategory.LICENSED: 3,
        StaffCategory.CLASSIFIED: 3,
    })
    required_observations_probationary: int = Field(3, ge=0)
    required_observations_permanent: int = Field(3, ge=0)
    required_observations_classified: int = Field(0, ge=0)
    probationary_years: int = Field(3, ge=0)
    # Formal observations only count once both observation forms are in.
    formal_requires_forms: bool = True

    @staticmethod
    def _category(staff: StaffMember) -> StaffCategory:
        # Uncategorised staff are held to the licensed requirements.
        return staff.staff_category or StaffCategory.LICENSED

    def goals_required(self, staff: StaffMember) -> int:
        return self.required_goals.get(self._category(staff), 0)

    def observations_required(self, staff: StaffMember, reference_date: date) -> int:
        if self._category(staff) == StaffCategory.CLASSIFIED:
            return self.required_observations_classified
        if staff.is_probationary(self.probationary_years, on=reference_date):
            return self.required_observations_probationary
        return self.required_observations_permanent


class MilestoneDefinition(BaseModel):
    """One row of the calendar."""
    key: str
    name: str
    kind: MilestoneKind
    due: date
    meeting_type: Optional[MeetingType] = None
    staff_categories: Optional[List[StaffCategory]] = None

    @model_validator(mode="after")
    def meeting_milestones_need_type(self):
        if self.kind == MilestoneKind.MEETING and self.meeting_type is None:
            raise ValueError(f"milestone '{self.key}' of kind meeting needs a meeting_type")
        return self

    def required_count(self, staff: StaffMember, policy: CompliancePolicy, reference_date: date) -> Optional[int]:
        """Required count for count-based milestones, None otherwise."""
        if self.kind == MilestoneKind.GOALS_APPROVED:
            return policy.goals_required(staff)
        if self.kind == MilestoneKind.OBSERVATIONS:
            return policy.observations_required(staff, reference_date)
        return None

    def applies_if(self, staff: StaffMember, policy: CompliancePolicy, reference_date: date) -> bool:
        """Whether this milestone is part of the staff member's cycle at all."""
        if self.staff_categories is not None:
            if staff.staff_category is None or staff.staff_category not in self.staff_categories:
                return False

        required = self.required_count(staff, policy, reference_date)
        return required is None or required > 0


class DeadlineCalendar(BaseModel):
    """Ordered milestone definitions for one school year."""
    school_year: str
    version: int = 1
    starts_on: date
    ends_on: date
    policy: CompliancePolicy = Field(default_factory=CompliancePolicy)
    milestones: List[MilestoneDefinition]

    @field_validator("milestones")
    @classmethod
    def unique_keys(cls, v):
        keys = [m.key for m in v]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate milestone keys: {duplicates}")
        return v

    @model_validator(mode="after")
    def due_dates_inside_year(self):
        if self.ends_on < self.starts_on:
            raise ValueError("ends_on is before starts_on")
        for milestone in self.milestones:
            if not self.starts_on <= milestone.due <= self.ends_on:
                raise ValueError(
                    f"milestone '{milestone.key}' is due {milestone.due}, outside {self.school_year}"
                )
        return self

    def applies_if(self, definition: MilestoneDefinition, staff: StaffMember) -> bool:
        # Tenure is fixed at the start of the cycle so applicability never
        # changes while the year runs.
        return definition.applies_if(staff, self.policy, self.starts_on)

    def required_count(self, definition: MilestoneDefinition, staff: StaffMember) -> Optional[int]:
        return definition.required_count(staff, self.policy, self.starts_on)

    def applicable_milestones(self, staff: StaffMember) -> List[MilestoneDefinition]:
        return [m for m in self.milestones if self.applies_if(m, staff)]

    def milestone(self, key: str) -> Optional[MilestoneDefinition]:
        return next((m for m in self.milestones if m.key == key), None)


def _calendar_path(school_year: str, directory: Optional[Union[str, Path]]) -> Path:
    return Path(directory or CALENDAR_DIR) / f"{school_year}.yaml"


def parse_calendar(content: str, source: str = "<string>") -> DeadlineCalendar:
    """Parse and validate calendar YAML."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CalendarError(f"Invalid YAML in calendar {source}: {e}") from e

    if not isinstance(data, dict):
        raise CalendarError(f"Calendar {source} must be a mapping")

    try:
        return DeadlineCalendar.model_validate(data)
    except ValidationError as e:
        raise CalendarError(f"Invalid calendar {source}: {e}") from e


@lru_cache(maxsize=16)
def _load_calendar_file(path: Path) -> DeadlineCalendar:
    if not path.exists():
        raise CalendarError(f"No deadline calendar at {path}")

    calendar = parse_calendar(path.read_text(encoding="utf-8"), source=str(path))
    logger.info(f"Loaded deadline calendar {calendar.school_year} v{calendar.version} from {path}")
    return calendar


def load_calendar(
    school_year: Optional[str] = None,
    directory: Optional[Union[str, Path]] = None,
) -> DeadlineCalendar:
    """
    Load the deadline calendar for a school year.

    Args:
        school_year: e.g. "2025-2026"; defaults to the configured school year
        directory: Folder holding <school-year>.yaml files; defaults to the
            configured override directory, then the bundled calendars

    Returns:
        Validated DeadlineCalendar
    """
    if school_year is None or directory is None:
        from stafftrak.config import settings

        school_year = school_year or settings.compliance.school_year
        directory = directory or settings.compliance.calendar_dir

    calendar = _load_calendar_file(_calendar_path(school_year, directory).resolve())
    if calendar.school_year != school_year:
        raise CalendarError(
            f"Calendar file for {school_year} declares school_year {calendar.school_year}"
        )
    return calendar


def available_school_years(directory: Optional[Union[str, Path]] = None) -> List[str]:
    """School years with a calendar file in directory."""
    folder = Path(directory or CALENDAR_DIR)
    if not folder.is_dir():
        return []
    return sorted(p.stem for p in folder.glob("*.yaml"))

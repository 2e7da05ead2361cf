"""
Snapshots of already-fetched store records.

The compliance and reporting layers only ever read from these containers,
never from the store, so a computation is always over one consistent
point-in-time view.
"""

from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel

from .database import (
    Goal,
    Meeting,
    Observation,
    SelfAssessment,
    StaffMember,
    StaffRole,
    SummativeEvaluation,
)


class StaffEntities(BaseModel):
    """All cycle records belonging to one staff member."""
    goals: List[Goal] = []
    observations: List[Observation] = []
    meetings: List[Meeting] = []
    self_assessments: List[SelfAssessment] = []
    summative_evaluations: List[SummativeEvaluation] = []

    def only_for(self, staff_id: UUID) -> "StaffEntities":
        """Drop anything that does not belong to staff_id."""
        return StaffEntities(
            goals=[g for g in self.goals if g.staff_id == staff_id],
            observations=[o for o in self.observations if o.staff_id == staff_id],
            meetings=[m for m in self.meetings if m.staff_id == staff_id],
            self_assessments=[s for s in self.self_assessments if s.staff_id == staff_id],
            summative_evaluations=[e for e in self.summative_evaluations if e.staff_id == staff_id],
        )


class EntitySnapshot(StaffEntities):
    """Roster plus every cycle record for a tenant (or an evaluator's caseload)."""
    roster: List[StaffMember] = []
    # Evaluators/admins, for name lookups only.
    profiles: List[StaffMember] = []

    def staff_members(self, include_inactive: bool = False) -> List[StaffMember]:
        """Roster members who go through the evaluation cycle."""
        return [
            s for s in self.roster
            if s.role == StaffRole.STAFF and (include_inactive or s.is_active)
        ]

    def for_staff(self, staff_id: UUID) -> StaffEntities:
        return self.only_for(staff_id)

    def split_by_staff(self) -> Dict[UUID, StaffEntities]:
        """Group every collection by staff_id in a single pass each."""
        grouped: Dict[UUID, Dict[str, list]] = defaultdict(lambda: defaultdict(list))
        for field_name in StaffEntities.model_fields:
            for record in getattr(self, field_name):
                grouped[record.staff_id][field_name].append(record)

        return {
            staff_id: StaffEntities(**collections)
            for staff_id, collections in grouped.items()
        }

    def display_name(self, person_id: Optional[UUID]) -> Optional[str]:
        if person_id is None:
            return None
        for person in list(self.profiles) + list(self.roster):
            if person.id == person_id:
                return person.full_name
        return None


def load_snapshot_file(path: Union[str, Path]) -> EntitySnapshot:
    """
    Read an EntitySnapshot from a JSON export.

    The file holds one object with optional keys roster, profiles, goals,
    observations, meetings, self_assessments and summative_evaluations,
    each a list of rows as stored in the corresponding table.
    """
    return EntitySnapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))

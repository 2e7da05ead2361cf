"""
Evaluation-cycle service.

Fetch → transition/evaluate → persist. The service is the only place where
the pure workflow machines and the compliance evaluator meet the store.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel

from stafftrak.compliance import DeadlineCalendar, evaluate, load_calendar
from stafftrak.config import Settings
from stafftrak.database.store import EntityStore, RecordType, resolve_record_type
from stafftrak.models import (
    ActionItem,
    ComplianceRecord,
    EvaluatorDashboardStats,
    FleetReport,
    Goal,
    Meeting,
    Observation,
    SelfAssessment,
    StaffMember,
    SummativeEvaluation,
)
from stafftrak.reporting import build_fleet_report, evaluator_dashboard_stats, staff_action_items
from stafftrak.workflow import WorkflowError, changed_fields, get_transition, summative


logger = logging.getLogger(__name__)


class EvaluationCycleService:
    """
    Applies workflow actions against an EntityStore and computes compliance.

    Args:
        store: Where records are read from and written to
        calendar: Deadline calendar; defaults to the configured school year
        settings: Application settings; defaults to the module-level settings
    """

    def __init__(
        self,
        store: EntityStore,
        calendar: Optional[DeadlineCalendar] = None,
        settings: Optional[Settings] = None,
    ):
        if settings is None:
            from stafftrak.config import settings as default_settings
            settings = default_settings

        self.store = store
        self.settings = settings
        self.calendar = calendar or load_calendar(
            settings.compliance.school_year, settings.compliance.calendar_dir
        )

    async def _staff_member(self, staff_id: UUID) -> StaffMember:
        return await self.store.require(StaffMember, staff_id)

    async def _persist(self, record_type: RecordType, before: BaseModel, after: BaseModel) -> BaseModel:
        fields = changed_fields(before, after)
        if not fields:
            return after
        return await self.store.update_fields(record_type, before.id, fields)

    async def apply(
        self,
        record_type: Union[str, RecordType],
        record_id: UUID,
        action: str,
        **payload: Any,
    ) -> BaseModel:
        """
        Run one workflow action on a stored record and persist the result.

        Args:
            record_type: Model class or short name ("goal", "observation", ...)
            record_id: Record to act on
            action: Action name, e.g. "submit", "approve", "staff_sign"
            **payload: Action arguments (actor_id, feedback, at, ...)

        Returns:
            The stored record after the update

        Raises:
            NotFound: The record (or its staff member) does not exist
            WorkflowError: The action is not allowed; nothing is written
        """
        record_type = resolve_record_type(record_type)
        record = await self.store.require(record_type, record_id)
        try:
            found = get_transition(record, action)
            if found.needs_staff and "staff" not in payload:
                payload["staff"] = await self._staff_member(record.staff_id)
            result = found.handler(record, **payload)
        except WorkflowError as e:
            logger.warning(f"Rejected {record_type.__name__}.{action} on {record_id}: {e}")
            raise

        stored = await self._persist(record_type, record, result)
        logger.info(
            f"{record_type.__name__} {record_id}: {action} "
            f"({getattr(record.status, 'value', record.status)} -> {getattr(stored.status, 'value', stored.status)})"
        )
        return stored

    # Goals

    async def submit_goal(self, goal_id: UUID, actor_id: UUID, **kwargs) -> Goal:
        return await self.apply(Goal, goal_id, "submit", actor_id=actor_id, **kwargs)

    async def approve_goal(self, goal_id: UUID, evaluator_id: UUID, feedback: Optional[str] = None, **kwargs) -> Goal:
        return await self.apply(Goal, goal_id, "approve", evaluator_id=evaluator_id, feedback=feedback, **kwargs)

    async def request_goal_revision(self, goal_id: UUID, evaluator_id: UUID, feedback: str) -> Goal:
        return await self.apply(Goal, goal_id, "request_revision", evaluator_id=evaluator_id, feedback=feedback)

    # Observations

    async def start_observation(self, observation_id: UUID, actor_id: UUID, **kwargs) -> Observation:
        return await self.apply(Observation, observation_id, "start", actor_id=actor_id, **kwargs)

    async def complete_observation(self, observation_id: UUID, actor_id: UUID, feedback: str, **kwargs) -> Observation:
        return await self.apply(Observation, observation_id, "complete", actor_id=actor_id, feedback=feedback, **kwargs)

    async def cancel_observation(self, observation_id: UUID, actor_id: UUID, **kwargs) -> Observation:
        return await self.apply(Observation, observation_id, "cancel", actor_id=actor_id, **kwargs)

    # Meetings

    async def complete_meeting(self, meeting_id: UUID, actor_id: UUID, **kwargs) -> Meeting:
        return await self.apply(Meeting, meeting_id, "complete", actor_id=actor_id, **kwargs)

    async def sign_off_meeting(self, meeting_id: UUID, actor_id: UUID, **kwargs) -> Meeting:
        return await self.apply(Meeting, meeting_id, "staff_sign_off", actor_id=actor_id, **kwargs)

    # Self-assessments

    async def submit_self_assessment(self, assessment_id: UUID, actor_id: UUID, **kwargs) -> SelfAssessment:
        return await self.apply(SelfAssessment, assessment_id, "submit", actor_id=actor_id, **kwargs)

    # Summative evaluations

    async def score_domain(
        self,
        evaluation_id: UUID,
        actor_id: UUID,
        domain_id: str,
        score: Optional[int],
        feedback: Optional[str] = None,
    ) -> SummativeEvaluation:
        """Score one rubric domain; the overall score and rating follow."""
        evaluation = await self.store.require(SummativeEvaluation, evaluation_id)
        try:
            result = summative.score_domain(evaluation, actor_id, domain_id, score, feedback)
        except WorkflowError as e:
            logger.warning(f"Rejected SummativeEvaluation.score_domain on {evaluation_id}: {e}")
            raise
        return await self._persist(SummativeEvaluation, evaluation, result)

    async def submit_summative(self, evaluation_id: UUID, actor_id: UUID, **kwargs) -> SummativeEvaluation:
        return await self.apply(SummativeEvaluation, evaluation_id, "submit_to_staff", actor_id=actor_id, **kwargs)

    async def sign_summative(self, evaluation_id: UUID, actor_id: UUID, **kwargs) -> SummativeEvaluation:
        return await self.apply(SummativeEvaluation, evaluation_id, "staff_sign", actor_id=actor_id, **kwargs)

    # Compliance and reporting

    async def compliance_for(self, staff_id: UUID, as_of: date) -> ComplianceRecord:
        """Compliance record for one staff member from freshly fetched records."""
        staff = await self._staff_member(staff_id)
        snapshot = await self.store.load_snapshot(staff.tenant_id, staff_id=staff_id)
        return evaluate(staff, snapshot.for_staff(staff_id), self.calendar, as_of)

    async def fleet_report(
        self,
        tenant_id: UUID,
        as_of: date,
        evaluator_id: Optional[UUID] = None,
    ) -> FleetReport:
        """Fleet report for a tenant, or for one evaluator's caseload."""
        snapshot = await self.store.load_snapshot(tenant_id, evaluator_id=evaluator_id)
        return build_fleet_report(snapshot, self.calendar, as_of, tenant_id=tenant_id)

    async def evaluator_dashboard(self, tenant_id: UUID, evaluator_id: UUID, as_of: date) -> EvaluatorDashboardStats:
        snapshot = await self.store.load_snapshot(tenant_id, evaluator_id=evaluator_id)
        return evaluator_dashboard_stats(evaluator_id, snapshot, self.calendar, as_of)

    async def action_items(self, staff_id: UUID) -> List[ActionItem]:
        """Dashboard to-do list for one staff member."""
        staff = await self._staff_member(staff_id)
        snapshot = await self.store.load_snapshot(staff.tenant_id, staff_id=staff_id)
        observer_names: Dict[UUID, str] = {p.id: p.full_name for p in snapshot.profiles}
        return staff_action_items(
            staff,
            snapshot.for_staff(staff_id),
            window_days=self.settings.compliance.upcoming_window_days,
            school_year=self.calendar.school_year,
            observer_names=observer_names,
        )

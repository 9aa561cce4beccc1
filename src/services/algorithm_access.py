"""
Proprietary algorithm eligibility - questionnaire, admin review and plan grants
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from src.database.connection import atomic
from src.database.models import (
    AlgorithmApplication, ApplicationStatus, InvestmentPlan, UserAlgorithmAccess
)
from src.observability.logging import get_logger
from src.observability.tracing import track_operation
from src.utils.exceptions import (
    InvalidInputError,
    InvalidStateTransitionError,
    NotFoundError,
    PlanNotFoundError,
    ValidationError,
)

logger = get_logger(__name__)

NOT_APPLIED = "not_applied"

REQUIRED_ANSWER_KEYS = (
    "age_range",
    "occupation",
    "industry",
    "annual_income",
    "net_worth",
    "liquid_capital",
    "investing_duration",
    "assets_invested",
    "investment_knowledge",
    "check_frequency",
    "investor_description",
    "drop_reaction",
    "what_matters_most",
    "return_profile",
    "investment_horizon",
    "involvement_level",
    "communication_pref",
    "allocation_percentage",
    "primary_goal",
    "primary_concern",
    "holds_crypto",
)

RESUBMISSION_BLOCKED = {
    ApplicationStatus.PENDING.value: "Your application is already pending review",
    ApplicationStatus.UNDER_REVIEW.value: "Your application is currently under review",
    ApplicationStatus.APPROVED.value: "Your application has already been approved",
}

REVIEW_STATUSES = {
    ApplicationStatus.UNDER_REVIEW.value,
    ApplicationStatus.APPROVED.value,
    ApplicationStatus.REJECTED.value,
}

TERMINAL_STATUSES = {ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value}


def _missing_answers(answers: Dict[str, Any]) -> List[str]:
    return [key for key in REQUIRED_ANSWER_KEYS if answers.get(key) in (None, "", [], {})]


@track_operation("submit_application")
def submit_application(db: Session, user_id: int, answers: Dict[str, Any]) -> AlgorithmApplication:
    """
    Submit the eligibility questionnaire, or re-submit a rejected one.

    Raises:
        ValidationError: required answers missing
        InvalidStateTransitionError: an application is pending, under review or approved
    """
    if not isinstance(answers, dict):
        raise ValidationError("answers must be an object", "answers")
    missing = _missing_answers(answers)
    if missing:
        raise ValidationError(f"All required fields must be filled: {', '.join(missing)}", "answers")

    with atomic(db):
        application = (
            db.query(AlgorithmApplication)
            .filter(AlgorithmApplication.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if application is not None and application.status in RESUBMISSION_BLOCKED:
            raise InvalidStateTransitionError(
                RESUBMISSION_BLOCKED[application.status],
                current_status=application.status,
                requested_status=ApplicationStatus.PENDING.value
            )

        if application is None:
            application = AlgorithmApplication(user_id=user_id)
            db.add(application)

        application.answers = dict(answers)
        application.status = ApplicationStatus.PENDING.value
        application.admin_notes = None
        application.reviewed_at = None
        application.reviewed_by = None
        db.flush()

    logger.info("Algorithm application submitted", extra={"user_id": user_id, "application_id": application.id})
    return application


def get_application_status(db: Session, user_id: int) -> Dict[str, Any]:
    """Current application status of a user, with the accesses granted so far"""
    application = db.query(AlgorithmApplication).filter(AlgorithmApplication.user_id == user_id).first()
    if application is None:
        return {"status": NOT_APPLIED, "application": None, "access": []}

    access = db.query(UserAlgorithmAccess).filter(UserAlgorithmAccess.user_id == user_id).all()
    return {"status": application.status, "application": application, "access": access}


def _upsert_access(
    db: Session,
    user_id: int,
    plan_id: int,
    custom_duration_days: Optional[int],
    granted_by: Optional[int]
) -> UserAlgorithmAccess:
    if db.query(InvestmentPlan).filter(InvestmentPlan.id == plan_id).first() is None:
        raise PlanNotFoundError(plan_id)
    if custom_duration_days is not None and int(custom_duration_days) <= 0:
        raise InvalidInputError("custom_duration_days", custom_duration_days, "Must be a positive number of days")

    access = (
        db.query(UserAlgorithmAccess)
        .filter(UserAlgorithmAccess.user_id == user_id, UserAlgorithmAccess.plan_id == plan_id)
        .with_for_update()
        .first()
    )
    if access is None:
        access = UserAlgorithmAccess(user_id=user_id, plan_id=plan_id)
        db.add(access)

    access.custom_duration_days = int(custom_duration_days) if custom_duration_days is not None else None
    access.granted_at = datetime.utcnow()
    access.granted_by = granted_by
    db.flush()
    return access


@track_operation("review_application")
def review_application(
    db: Session,
    application_id: int,
    status: str,
    reviewer_id: Optional[int] = None,
    admin_notes: Optional[str] = None,
    plan_id: Optional[int] = None,
    custom_duration_days: Optional[int] = None
) -> AlgorithmApplication:
    """
    Move an application to under_review, approved or rejected.

    Approving with a ``plan_id`` grants access to that plan in the same
    transaction. Approved and rejected applications cannot be reviewed again.
    """
    if status not in REVIEW_STATUSES:
        raise InvalidInputError("status", status, f"Must be one of {sorted(REVIEW_STATUSES)}")

    with atomic(db):
        application = (
            db.query(AlgorithmApplication)
            .filter(AlgorithmApplication.id == application_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if application is None:
            raise NotFoundError("Application", application_id)
        if application.status in TERMINAL_STATUSES:
            raise InvalidStateTransitionError(
                f"Application already {application.status}",
                current_status=application.status,
                requested_status=status
            )

        application.status = status
        if admin_notes:
            application.admin_notes = admin_notes
        if status in TERMINAL_STATUSES:
            application.reviewed_at = datetime.utcnow()
            application.reviewed_by = reviewer_id

        if status == ApplicationStatus.APPROVED.value and plan_id is not None:
            _upsert_access(db, application.user_id, plan_id, custom_duration_days, reviewer_id)
        db.flush()

    logger.info(
        "Algorithm application reviewed",
        extra={"application_id": application_id, "to_status": status, "reviewer_id": reviewer_id}
    )
    return application


@track_operation("grant_algorithm_access")
def grant_algorithm_access(
    db: Session,
    user_id: int,
    plan_id: int,
    custom_duration_days: Optional[int] = None,
    granted_by: Optional[int] = None
) -> UserAlgorithmAccess:
    """Grant (or re-grant with a new duration) access to a plan"""
    with atomic(db):
        access = _upsert_access(db, user_id, plan_id, custom_duration_days, granted_by)
    return access


def get_eligible_plans(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """Plans a user was granted, with the duration that applies to them"""
    accesses = (
        db.query(UserAlgorithmAccess)
        .filter(UserAlgorithmAccess.user_id == user_id)
        .order_by(UserAlgorithmAccess.granted_at)
        .all()
    )
    return [
        {
            "plan": access.plan,
            "access_id": access.id,
            "custom_duration_days": access.custom_duration_days,
            "effective_duration_days": (
                access.custom_duration_days
                if access.custom_duration_days is not None
                else access.plan.duration_days
            ),
            "granted_at": access.granted_at,
        }
        for access in accesses
    ]

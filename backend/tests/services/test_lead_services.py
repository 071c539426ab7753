"""Lead pipeline and email sequence scheduling."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from app.core.enums import LeadStatus, LeadType, ScheduledEmailStatus, SequenceTrigger
from app.core.exceptions import ConflictException, ForbiddenException, NotFoundException, ServiceException
from app.models.lead import ScheduledEmail
from app.models.types import utcnow
from app.models.user import User
from app.schemas.lead import (
    LandingSubmission,
    LeadCreate,
    LeadStatusUpdate,
    SequenceCreate,
    SequenceStepIn,
    SequenceUpdate,
)
from app.services.email_sequence_service import EmailSequenceService
from app.services.lead_service import LeadService, lead_scope


def _steps(*delays: int) -> list:
    return [
        SequenceStepIn(
            subject=f"Hi {{{{ first_name }}}} #{index}",
            body=f"Step {index} from {{{{ coach_name }}}}",
            delay_days=delay,
        )
        for index, delay in enumerate(delays, start=1)
    ]


def _lead(db: Session, coach: User, name: str = "Pat Prospect", email: str = "pat@example.com"):
    return LeadService(db).create_lead(coach, LeadCreate(name=name, email=email, source="instagram"))


def _emails(db: Session, lead_id: str) -> list:
    db.expire_all()
    return (
        db.query(ScheduledEmail)
        .filter(ScheduledEmail.lead_id == lead_id)
        .order_by(ScheduledEmail.scheduled_for.asc())
        .all()
    )


class TestLeadScope:
    def test_scope_by_user_type(self, test_admin: User, test_coach: User, test_client_user: User):
        assert lead_scope(test_admin) == (None, LeadType.ADMIN_LEAD)
        assert lead_scope(test_coach) == (test_coach.id, LeadType.COACH_LEAD)
        with pytest.raises(ForbiddenException):
            lead_scope(test_client_user)


class TestLeadService:
    def test_landing_dedupe_window(self, db: Session):
        service = LeadService(db)
        submission = LandingSubmission(name="Alex Applicant", email="Alex@Example.com")

        lead = service.submit_landing(submission)
        assert lead.email == "alex@example.com"
        assert lead.lead_type == "admin_lead"

        with pytest.raises(ConflictException) as exc:
            service.submit_landing(submission)
        assert exc.value.code == "LEAD_RECENTLY_SUBMITTED"

    def test_old_landing_lead_is_refreshed(self, db: Session):
        service = LeadService(db)
        lead = service.submit_landing(LandingSubmission(name="Alex", email="alex@example.com"))
        lead.submitted_at = utcnow() - timedelta(days=120)
        lead.status = LeadStatus.NOT_CONVERTED.value
        db.commit()

        again = service.submit_landing(LandingSubmission(name="Alex Again", email="alex@example.com", phone="555"))

        assert again.id == lead.id
        assert again.name == "Alex Again"
        assert again.status == "contacted"

    def test_qualified_landing_creates_coach_account(self, db: Session):
        lead = LeadService(db).submit_landing(
            LandingSubmission(name="Quinn Qualified", email="quinn@example.com", qualified=True)
        )

        coach = db.query(User).filter(User.email == "quinn@example.com").one()
        assert coach.user_type == "coach"
        assert coach.first_name == "Quinn"
        assert coach.last_name == "Qualified"
        assert lead.qualified is True

    def test_qualified_landing_for_existing_coach(self, db: Session, test_coach: User):
        with pytest.raises(ConflictException) as exc:
            LeadService(db).submit_landing(LandingSubmission(name="Casey", email=test_coach.email, qualified=True))

        assert exc.value.code == "ACCOUNT_EXISTS"

    def test_coach_sees_only_own_leads(self, db: Session, test_coach: User, test_coach_2: User):
        lead = _lead(db, test_coach)

        with pytest.raises(NotFoundException):
            LeadService(db).get_lead(test_coach_2, lead.id)
        items, total = LeadService(db).list_leads(test_coach_2)
        assert (items, total) == ([], 0)

    def test_status_change_sets_timestamps_and_stats(self, db: Session, test_coach: User):
        service = LeadService(db)
        first = _lead(db, test_coach)
        _lead(db, test_coach, name="Sam", email="sam@example.com")

        converted = service.update_status(
            test_coach, first.id, LeadStatusUpdate(status=LeadStatus.CONVERTED, notes="Signed")
        )

        assert converted.converted_at is not None
        assert converted.notes == "Signed"
        stats = service.lead_stats(test_coach)
        assert stats["total"] == 2
        assert stats["by_status"]["converted"] == 1
        assert stats["by_status"]["contacted"] == 1
        assert stats["conversion_rate"] == 50.0

    def test_mark_unresponsive(self, db: Session, test_coach: User):
        service = LeadService(db)
        _lead(db, test_coach)

        assert service.mark_unresponsive(now=utcnow() + timedelta(days=1)) == 0
        assert service.mark_unresponsive(now=utcnow() + timedelta(days=15)) == 1
        assert service.lead_stats(test_coach)["by_status"]["unresponsive"] == 1


class TestEmailSequences:
    def test_schedule_renders_and_accumulates_delays(self, db: Session, test_coach: User):
        service = EmailSequenceService(db)
        sequence = service.create_sequence(test_coach.id, SequenceCreate(name="Nurture", steps=_steps(0, 2, 3)))
        lead = _lead(db, test_coach)
        start = utcnow()

        with service.transaction():
            emails = service.schedule(sequence, lead, now=start)

        assert [email.scheduled_for - start for email in emails] == [
            timedelta(days=0),
            timedelta(days=2),
            timedelta(days=5),
        ]
        assert emails[0].subject == "Hi Pat #1"
        assert emails[0].body == "Step 1 from Casey Coach"

        with pytest.raises(ConflictException) as exc:
            service.schedule(sequence, lead)
        assert exc.value.code == "SEQUENCE_ACTIVE"

    def test_pause_and_resume_shift_schedule(self, db: Session, test_coach: User):
        service = EmailSequenceService(db)
        sequence = service.create_sequence(test_coach.id, SequenceCreate(name="Nurture", steps=_steps(1)))
        lead = _lead(db, test_coach)
        scheduled = service.start_for_lead(test_coach, sequence.id, lead.id)
        original = scheduled[0].scheduled_for

        paused = service.pause(test_coach, sequence.id, lead.id)
        assert [email.status for email in paused] == ["paused"]

        paused[0].paused_at = paused[0].paused_at - timedelta(hours=6)
        db.commit()
        resumed = service.resume(test_coach, sequence.id, lead.id)

        assert resumed[0].status == "scheduled"
        assert resumed[0].paused_at is None
        assert resumed[0].scheduled_for - original >= timedelta(hours=6)

    def test_send_due_marks_sent_and_failed(self, db: Session, test_coach: User):
        mailer = MagicMock()
        mailer.send_sequence_email.side_effect = [{"id": "msg_1"}, ServiceException("Provider down")]
        service = EmailSequenceService(db, email_service=mailer)
        sequence = service.create_sequence(test_coach.id, SequenceCreate(name="Nurture", steps=_steps(0, 1, 10)))
        lead = _lead(db, test_coach)
        service.start_for_lead(test_coach, sequence.id, lead.id)

        result = service.send_due(now=utcnow() + timedelta(days=2))

        assert result == {"sent": 1, "failed": 1}
        assert mailer.send_sequence_email.call_args_list[0].kwargs["from_name"] == "Casey Coaching"
        statuses = [email.status for email in _emails(db, lead.id)]
        assert statuses == ["sent", "failed", "scheduled"]

    def test_replacing_steps_keeps_sent_history(self, db: Session, test_coach: User):
        mailer = MagicMock()
        mailer.send_sequence_email.return_value = {"id": "msg_1"}
        service = EmailSequenceService(db, email_service=mailer)
        sequence = service.create_sequence(test_coach.id, SequenceCreate(name="Nurture", steps=_steps(0, 5)))
        lead = _lead(db, test_coach)
        service.start_for_lead(test_coach, sequence.id, lead.id)
        assert service.send_due(now=utcnow() + timedelta(days=1)) == {"sent": 1, "failed": 0}

        updated = service.update_sequence(test_coach.id, sequence.id, SequenceUpdate(steps=_steps(2)))

        assert len(updated.steps) == 1
        emails = _emails(db, lead.id)
        assert [email.status for email in emails] == ["sent", "cancelled"]
        assert [email.step_id for email in emails] == [None, None]
        assert emails[0].subject == "Hi Pat #1"

    def test_lead_created_trigger(self, db: Session, test_coach: User):
        EmailSequenceService(db).create_sequence(
            test_coach.id,
            SequenceCreate(name="Welcome", trigger=SequenceTrigger.LEAD_CREATED, steps=_steps(0, 1)),
        )

        lead = _lead(db, test_coach)

        assert len(_emails(db, lead.id)) == 2

    def test_conversion_cancels_pending_and_starts_status_sequence(self, db: Session, test_coach: User):
        service = EmailSequenceService(db)
        nurture = service.create_sequence(test_coach.id, SequenceCreate(name="Nurture", steps=_steps(1, 1)))
        service.create_sequence(
            test_coach.id,
            SequenceCreate(
                name="Onboarding",
                trigger=SequenceTrigger.STATUS_CHANGE,
                target_status=LeadStatus.CONVERTED,
                steps=_steps(0),
            ),
        )
        lead = _lead(db, test_coach)
        service.start_for_lead(test_coach, nurture.id, lead.id)

        LeadService(db).update_status(test_coach, lead.id, LeadStatusUpdate(status=LeadStatus.CONVERTED))

        by_status = {}
        for email in _emails(db, lead.id):
            by_status.setdefault(email.status, []).append(email.sequence_id)
        assert len(by_status[ScheduledEmailStatus.CANCELLED.value]) == 2
        assert len(by_status[ScheduledEmailStatus.SCHEDULED.value]) == 1
        assert nurture.id not in by_status[ScheduledEmailStatus.SCHEDULED.value]

"""
ServiceCreditService tests.

The facade is the unit of work boundary:
- Successful calls commit and return frozen DTOs
- Failed calls roll back everything the call touched
- Every call logs <operation>_started then _completed or _failed
"""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from credit_ledger.domain.dtos import CreditLotInfo, OffsetApplicationResult
from credit_ledger.exceptions import (
    CreditLotNotFoundError,
    EmployeeNotFoundError,
    InsufficientBalanceError,
    InvariantViolationError,
    ValidationError,
)
from credit_ledger.invariants import LedgerInvariant
from credit_ledger.models.attendance import AttendanceStatus
from credit_ledger.models.credit_lot import CreditLotStatus
from credit_ledger.models.offset import OffsetRecord, OffsetStatus
from tests.conftest import read_balance, read_lot, seed_approved_lot


class TestLotLifecycle:

    def test_create_and_approve_returns_dtos(
        self, session, service, employee, test_actor_id, approver_id
    ):
        created = service.create_credit(
            employee.id, "overtime", date(2024, 5, 4), "20", "Saturday audit", test_actor_id
        )

        assert isinstance(created, CreditLotInfo)
        assert created.status == CreditLotStatus.PENDING
        assert created.credits_earned == Decimal("2.50")
        assert read_balance(session, employee.id) == Decimal("0.00")

        approved = service.approve_credit(created.id, approver_id, "ok")

        assert approved.status == CreditLotStatus.APPROVED
        assert approved.expiry_date == date(2025, 5, 4)
        assert read_balance(session, employee.id) == Decimal("2.50")
        with pytest.raises(FrozenInstanceError):
            approved.credits_balance = Decimal("0")

    def test_reject_update_delete(self, service, employee, test_actor_id, approver_id):
        first = service.create_credit(
            employee.id, "overtime", date(2024, 5, 4), "8", None, test_actor_id
        )
        second = service.create_credit(
            employee.id, "holiday_work", date(2024, 5, 5), "8", None, test_actor_id
        )

        updated = service.update_credit(first.id, test_actor_id, hours_worked="16")
        rejected = service.reject_credit(second.id, approver_id, "Not authorised")
        service.delete_credit(first.id, test_actor_id)

        assert updated.credits_earned == Decimal("2.00")
        assert rejected.status == CreditLotStatus.REJECTED
        assert rejected.rejection_reason == "Not authorised"
        with pytest.raises(CreditLotNotFoundError):
            service.get_credit(first.id)


class TestOffsets:

    def test_apply_and_revert(self, session, service, employee, absence, make_approved_lot, test_actor_id):
        make_approved_lot(employee.id, date(2024, 1, 8), hours="16")
        make_approved_lot(employee.id, date(2024, 2, 8), hours="8")

        result = service.apply_offset(employee.id, absence.id, "2.50", test_actor_id)

        assert isinstance(result, OffsetApplicationResult)
        assert result.offsets_created == 2
        assert result.remaining_balance == Decimal("0.50")

        reverted = [
            service.revert_offset(o.id, test_actor_id, "Absence withdrawn")
            for o in result.offsets
        ]

        assert all(o.status == OffsetStatus.REVERTED for o in reverted)
        assert read_balance(session, employee.id) == Decimal("3.00")
        session.refresh(absence)
        assert absence.status == AttendanceStatus.ABSENT

    def test_failed_apply_is_rolled_back(
        self, session, service, employee, absence, test_actor_id
    ):
        lot = seed_approved_lot(session, employee, date(2024, 1, 10), "2.00")

        with pytest.raises(InsufficientBalanceError):
            service.apply_offset(employee.id, absence.id, "3.00", test_actor_id)

        assert read_balance(session, employee.id) == Decimal("2.00")
        assert read_lot(session, lot.id).credits_balance == Decimal("2.00")
        assert session.query(OffsetRecord).count() == 0

    def test_failure_after_deduct_is_rolled_back(
        self, session, service, employee, absence, test_actor_id
    ):
        """An error part way through apply leaves no partial consumption."""
        lot = seed_approved_lot(session, employee, date(2024, 1, 10), "2.00")
        boom = InvariantViolationError(LedgerInvariant.CONSERVATION, "injected")

        with patch.object(service._attendance, "mark_offset_applied", side_effect=boom):
            with pytest.raises(InvariantViolationError):
                service.apply_offset(employee.id, absence.id, "1.00", test_actor_id)

        assert read_balance(session, employee.id) == Decimal("2.00")
        refreshed = read_lot(session, lot.id)
        assert refreshed.credits_used == Decimal("0.00")
        assert refreshed.credits_balance == Decimal("2.00")
        assert session.query(OffsetRecord).count() == 0

    def test_offset_listings(self, service, employee, absence, make_approved_lot, test_actor_id):
        lot = make_approved_lot(employee.id, date(2024, 1, 8), hours="16")
        result = service.apply_offset(employee.id, absence.id, "1.00", test_actor_id)
        offset_id = result.offsets[0].id

        assert [o.id for o in service.list_offsets_for_attendance_record(absence.id)] == [offset_id]
        assert [o.id for o in service.list_offsets_for_lot(lot.id)] == [offset_id]
        assert [o.id for o in service.list_offsets_for_employee(employee.id)] == [offset_id]


class TestReads:

    def test_summary(self, session, service, employee, absence, test_actor_id):
        seed_approved_lot(session, employee, date(2023, 5, 1), "3.00")
        seed_approved_lot(session, employee, date(2024, 1, 1), "2.00")
        service.create_credit(employee.id, "overtime", date(2024, 5, 4), "8", None, test_actor_id)
        service.apply_offset(employee.id, absence.id, "0.50", test_actor_id)

        summary = service.get_summary(employee.id)

        assert summary.total_earned == Decimal("6.00")
        assert summary.total_used == Decimal("0.50")
        assert summary.available_balance == Decimal("1.50")
        assert summary.pending_count == 1
        assert summary.approved_count == 2
        assert summary.expired_count == 1

    def test_summary_unknown_employee(self, service):
        with pytest.raises(EmployeeNotFoundError):
            service.get_summary(uuid4())

    def test_expiring_credits_uses_policy_window(self, session, service, employee):
        soon = seed_approved_lot(session, employee, date(2023, 6, 20), "1.00")
        seed_approved_lot(session, employee, date(2024, 1, 1), "1.00")

        assert service.policy.expiring_soon_days == 30
        assert [info.id for info in service.list_expiring_credits()] == [soon.id]
        assert service.list_expiring_credits(days=5) == []


class TestLogging:

    def test_completed_events(self, captured_logs, service, employee, test_actor_id):
        service.create_credit(employee.id, "overtime", date(2024, 5, 4), "8", None, test_actor_id)

        logs = captured_logs()
        messages = [r["message"] for r in logs]
        assert messages.index("create_credit_started") < messages.index("credit_lot_created")
        assert "create_credit_completed" in messages

        completed = next(r for r in logs if r["message"] == "create_credit_completed")
        assert completed["operation"] == "create_credit"
        assert completed["actor_id"] == str(test_actor_id)
        assert completed["employee_id"] == str(employee.id)
        assert "duration_ms" in completed
        assert "correlation_id" in completed

    def test_business_failure_logged_as_warning(
        self, captured_logs, service, employee, absence, test_actor_id
    ):
        with pytest.raises(InsufficientBalanceError):
            service.apply_offset(employee.id, absence.id, "1.00", test_actor_id)

        failed = next(r for r in captured_logs() if r["message"] == "apply_offset_failed")
        assert failed["level"] == "WARNING"
        assert failed["error_code"] == "INSUFFICIENT_BALANCE"

    def test_oversized_amount_is_validation_warning(
        self, captured_logs, service, employee, absence, test_actor_id
    ):
        with pytest.raises(ValidationError) as exc_info:
            service.apply_offset(employee.id, absence.id, "1e30", test_actor_id)

        assert exc_info.value.field == "credits_needed"
        failed = next(r for r in captured_logs() if r["message"] == "apply_offset_failed")
        assert failed["level"] == "WARNING"
        assert failed["error_code"] == "VALIDATION_ERROR"

    def test_invariant_violation_logged_as_error(
        self, session, captured_logs, service, employee, absence, test_actor_id
    ):
        seed_approved_lot(session, employee, date(2024, 1, 10), "2.00")
        boom = InvariantViolationError(LedgerInvariant.CONSERVATION, "injected")

        with patch.object(service._attendance, "mark_offset_applied", side_effect=boom):
            with pytest.raises(InvariantViolationError):
                service.apply_offset(employee.id, absence.id, "1.00", test_actor_id)

        logs = captured_logs()
        failed = next(r for r in logs if r["message"] == "apply_offset_failed")
        assert failed["level"] == "ERROR"
        assert failed["exc_invariant"] == "conservation"
        assert any(r["message"] == "transaction_rolled_back" for r in logs)

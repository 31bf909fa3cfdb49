import unittest
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from sqlalchemy.exc import OperationalError

from parkmeter.core.clock import as_utc
from parkmeter.core.vehicle import VehicleCategory
from parkmeter.crud import pass_crud, session_crud, settings_crud
from parkmeter.errors import (
    AlreadyCompleted,
    DuplicateActiveSession,
    MembershipExpired,
    NoActiveSession,
    StorageUnavailable,
    TariffNotConfigured,
)
from parkmeter.model.session_model import ExemptionReason, ParkingSession, SessionStatus
from parkmeter.services.policy_service import PolicyEngine

from support import T0, TENANT, DatabaseTestCase

CAR = VehicleCategory.FOUR_WHEELER


class PolicyTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.policy = PolicyEngine(self.db, TENANT, clock=self.clock)

    def add_pass(self, plate, created_at=T0):
        return pass_crud.create_pass(self.db, TENANT, plate, CAR, "Holder", created_at)


# 1) Entry admission
class TestAdmission(PolicyTestCase):
    def test_a1_plain_entry_is_admitted_unbilled_later(self):
        admission = self.policy.admit("tn18av4064", CAR)
        self.assertTrue(admission.admitted)
        self.assertEqual(admission.session.vehicle_id, "TN 18 AV 4064")
        self.assertEqual(admission.session.exemption_reason, ExemptionReason.NONE)

    def test_a2_duplicate_entry_is_rejected_until_exit(self):
        self.policy.admit("TN18AV4064", CAR)
        second = self.policy.admit("TN 18 AV 4064", CAR)
        self.assertFalse(second.admitted)
        self.assertIsInstance(second.rejection, DuplicateActiveSession)

        self.clock.advance(minutes=30)
        self.assertTrue(self.policy.settle("TN18AV4064").settled)
        self.assertTrue(self.policy.admit("TN18AV4064", CAR).admitted)

    def test_a3_expired_membership_blocks_entry(self):
        self.add_pass("KA01AB1234", created_at=T0 - timedelta(days=60))
        admission = self.policy.admit("KA01AB1234", CAR, is_exempt_requested=True)
        self.assertFalse(admission.admitted)
        self.assertIsInstance(admission.rejection, MembershipExpired)
        self.assertEqual(self.db.query(ParkingSession).count(), 0)

    def test_a4_membership_expiring_now_is_already_expired(self):
        membership = self.add_pass("KA01AB1234", created_at=T0 - timedelta(days=60))
        self.clock.now = as_utc(membership.expiry_date)
        self.assertIsInstance(self.policy.admit("KA01AB1234", CAR).rejection, MembershipExpired)

    def test_a5_valid_membership_forces_exemption(self):
        self.add_pass("KA01AB1234")
        admission = self.policy.admit("KA01AB1234", CAR, is_exempt_requested=False, proof="data:x")
        self.assertTrue(admission.admitted)
        self.assertTrue(admission.session.is_exempt)
        self.assertEqual(admission.session.exemption_reason, ExemptionReason.MEMBERSHIP)
        self.assertIsNone(admission.session.proof_ref)

    def test_a6_operator_exemption_records_proof(self):
        admission = self.policy.admit("KA01AB1234", CAR, is_exempt_requested=True, proof="data:image/jpeg;base64,AA")
        self.assertEqual(admission.session.exemption_reason, ExemptionReason.OPERATOR)
        self.assertEqual(admission.session.proof_ref, "data:image/jpeg;base64,AA")

    def test_a7_operator_exemption_without_proof_is_allowed(self):
        admission = self.policy.admit("KA01AB1234", CAR, is_exempt_requested=True)
        self.assertTrue(admission.session.is_exempt)
        self.assertIsNone(admission.session.proof_ref)

    def test_a8_renewed_pass_admits_again(self):
        membership = self.add_pass("KA01AB1234", created_at=T0 - timedelta(days=60))
        self.assertFalse(self.policy.admit("KA01AB1234", CAR).admitted)
        pass_crud.renew_pass(self.db, TENANT, membership.id, self.clock())
        self.assertTrue(self.policy.admit("KA01AB1234", CAR).admitted)


# 2) Exit settlement
class TestSettlement(PolicyTestCase):
    def test_s1_settle_computes_fee_and_completes(self):
        admitted = self.policy.admit("TN18AV4064", CAR).session
        self.clock.advance(minutes=90)
        settlement = self.policy.settle("TN18AV4064")
        self.assertTrue(settlement.settled)
        receipt = settlement.session
        self.assertEqual(receipt.id, admitted.id)
        self.assertEqual(receipt.status, SessionStatus.COMPLETED)
        self.assertEqual(receipt.amount, Decimal("50.00"))
        self.assertEqual(receipt.billed_minutes, 90)
        self.assertEqual(as_utc(receipt.exit_time), T0 + timedelta(minutes=90))

    def test_s2_twelve_hours_bills_twelve_hour_tier(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(hours=12)
        self.assertEqual(self.policy.settle("TN18AV4064").session.amount, Decimal("500.00"))

    def test_s3_within_grace_is_free(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(minutes=15)
        self.assertEqual(self.policy.settle("TN18AV4064").session.amount, Decimal("0"))

    def test_s4_exempt_stays_are_free(self):
        self.add_pass("KA01AB1234")
        self.policy.admit("KA01AB1234", CAR)
        self.policy.admit("TN18AV4064", CAR, is_exempt_requested=True)
        self.clock.advance(hours=30)
        member = self.policy.settle("KA01AB1234").session
        operator = self.policy.settle("TN18AV4064").session
        self.assertEqual((member.amount, member.billed_minutes), (Decimal("0"), 1800))
        self.assertEqual((operator.amount, operator.billed_minutes), (Decimal("0"), 1800))

    def test_s5_settling_twice_rejects_second_close(self):
        session = self.policy.admit("TN18AV4064", CAR).session
        self.clock.advance(minutes=90)
        first = self.policy.settle(session.id).session
        self.clock.advance(hours=20)

        second = self.policy.settle(session.id)
        self.assertFalse(second.settled)
        self.assertIsInstance(second.rejection, AlreadyCompleted)

        stored = session_crud.get_session(self.db, TENANT, session.id)
        self.assertEqual(stored.amount, first.amount)
        self.assertEqual(as_utc(stored.exit_time), T0 + timedelta(minutes=90))

    def test_s6_settle_unknown_vehicle(self):
        settlement = self.policy.settle("TN18AV4064")
        self.assertIsInstance(settlement.rejection, NoActiveSession)

    def test_s7_settings_update_applies_to_next_settlement(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(minutes=90)
        settings_crud.update_settings(self.db, TENANT, grace_period_minutes=120)
        self.assertEqual(self.policy.settle("TN18AV4064").session.amount, Decimal("0"))

    def test_s8_new_tariff_applies_to_next_settlement(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(minutes=90)
        settings_crud.update_settings(self.db, TENANT, tariff_table={
            "four-wheeler": [{"threshold_hours": 1, "amount": "70"}, {"threshold_hours": 2, "amount": "120"}],
        })
        self.assertEqual(self.policy.settle("TN18AV4064").session.amount, Decimal("120.00"))

    def test_s9_missing_tariff_fails_closed_and_keeps_session_active(self):
        self.policy.admit("TN18AV4064", CAR)
        settings_crud.update_settings(self.db, TENANT, tariff_table={"four-wheeler": []})
        self.clock.advance(hours=3)
        with self.assertRaises(TariffNotConfigured):
            self.policy.settle("TN18AV4064")
        self.assertIsNotNone(session_crud.find_active(self.db, TENANT, "TN18AV4064"))


# 3) Live quote
class TestQuote(PolicyTestCase):
    def test_q1_quote_does_not_close(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(minutes=800)
        session, fee = self.policy.quote("TN18AV4064")
        self.assertEqual(fee.amount, Decimal("500.00"))
        self.assertEqual(fee.billed_hours, 14)
        self.assertEqual(session_crud.find_active(self.db, TENANT, session.id).id, session.id)

    def test_q2_quote_without_session(self):
        with self.assertRaises(NoActiveSession):
            self.policy.quote("TN18AV4064")


# 4) Store outages
class TestStoreFailures(PolicyTestCase):
    def setUp(self):
        super().setUp()
        self.failure = OperationalError("SELECT", {}, Exception("database is locked"))

    def test_f1_admit_reports_unavailable_store(self):
        with mock.patch.object(self.db, "query", side_effect=self.failure):
            with self.assertRaises(StorageUnavailable):
                self.policy.admit("TN18AV4064", CAR)
        self.assertEqual(self.db.query(ParkingSession).count(), 0)

    def test_f2_settle_reports_unavailable_store_and_keeps_session_active(self):
        self.policy.admit("TN18AV4064", CAR)
        self.clock.advance(minutes=90)
        with mock.patch.object(self.db, "query", side_effect=self.failure):
            with self.assertRaises(StorageUnavailable):
                self.policy.settle("TN18AV4064")
        self.assertIsNotNone(session_crud.find_active(self.db, TENANT, "TN18AV4064"))

    def test_f3_quote_reports_unavailable_store(self):
        self.policy.admit("TN18AV4064", CAR)
        with mock.patch.object(self.db, "query", side_effect=self.failure):
            with self.assertRaises(StorageUnavailable):
                self.policy.quote("TN18AV4064")

    def test_f4_unreadable_settings_block_settlement(self):
        self.policy.admit("TN18AV4064", CAR)
        with mock.patch.object(self.db, "get", side_effect=self.failure):
            with self.assertRaises(StorageUnavailable):
                self.policy.settle("TN18AV4064")


if __name__ == "__main__":
    unittest.main()

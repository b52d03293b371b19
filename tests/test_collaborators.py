"""Tests for collaborator implementations and write transactions"""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.collaborators.eligibility import AccessGrantEligibility, HttpEligibilityService
from app.collaborators.notifications import notify_safely
from app.engine.errors import ExtensionAlreadyPending, SlotUnavailable
from app.engine.transaction import is_race_loss, write_transaction
from app.models.tenant import KitchenAccessGrant


@pytest.mark.asyncio
async def test_access_grant_eligibility(test_db, persist, test_tenant, test_kitchen):
    approved = uuid4()
    await persist(KitchenAccessGrant(tenant_id=test_tenant.id, chef_id=approved))

    eligibility = AccessGrantEligibility(test_db)

    assert await eligibility.is_eligible_to_book(approved, test_kitchen.id) is True
    assert await eligibility.is_eligible_to_book(uuid4(), test_kitchen.id) is False
    assert await eligibility.is_eligible_to_book(approved, uuid4()) is False


@pytest.mark.asyncio
async def test_unreachable_eligibility_service_denies():
    service = HttpEligibilityService("http://127.0.0.1:9", timeout=0.5)

    assert await service.is_eligible_to_book(uuid4(), uuid4()) is False


@pytest.mark.asyncio
async def test_notify_safely_swallows_failures(notifier):
    notifier.fail = True

    await notify_safely(notifier, "booking.created", {"booking_id": "b1"})

    assert notifier.events == []


def _pg_error(code):
    class PgError(Exception):
        pgcode = code

    return PgError("server error")


def test_race_loss_detection():
    assert is_race_loss(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: reservations.id")))
    assert is_race_loss(IntegrityError("INSERT", {}, _pg_error("23505")))
    assert is_race_loss(IntegrityError("INSERT", {}, _pg_error("23P01")))
    assert is_race_loss(OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked")))
    assert is_race_loss(OperationalError("COMMIT", {}, _pg_error("40001")))
    assert is_race_loss(OperationalError("COMMIT", {}, _pg_error("40P01")))
    assert not is_race_loss(OperationalError("SELECT", {}, Exception("no such table: kitchens")))


def test_integrity_bugs_are_not_race_losses():
    assert not is_race_loss(IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed")))
    assert not is_race_loss(IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: reservations.kitchen_id")))
    assert not is_race_loss(IntegrityError("INSERT", {}, _pg_error("23503")))
    assert not is_race_loss(IntegrityError("INSERT", {}, _pg_error("23502")))


@pytest.mark.asyncio
async def test_write_transaction_maps_race_losses(test_db):
    with pytest.raises(SlotUnavailable):
        async with write_transaction(test_db):
            raise IntegrityError("INSERT", {}, Exception("unique constraint failed"))

    with pytest.raises(ExtensionAlreadyPending):
        async with write_transaction(test_db, conflict_error=ExtensionAlreadyPending("pending")):
            raise IntegrityError("INSERT", {}, Exception("unique constraint failed"))

    with pytest.raises(OperationalError):
        async with write_transaction(test_db):
            raise OperationalError("SELECT", {}, Exception("no such table: kitchens"))

    with pytest.raises(IntegrityError):
        async with write_transaction(test_db):
            raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

"""
Unit tests for the Sharing Ledger and the Access Evaluator over the
in-memory repositories.
"""
import uuid

import pytest
import pytest_asyncio

from devicehub.core.clock import utc_now
from devicehub.core.errors import (
    AlreadyShared,
    DeviceNotFound,
    Forbidden,
    GrantNotFound,
    InvalidInput,
    InvalidPhone,
    NotOwner,
    RecipientNotFound,
    UserNotFound,
)
from devicehub.core.roles import Role
from devicehub.services.access import AccessEvaluator
from devicehub.services.sharing import SharingLedger

pytestmark = pytest.mark.asyncio

CODE = "1234567890123456"


@pytest.fixture
def ledger(store):
    return SharingLedger(store.share_repo, store.device_repo, store.user_repo)


@pytest.fixture
def access(store):
    return AccessEvaluator(store.share_repo)


@pytest_asyncio.fixture
async def people(store):
    users = store.user_repo
    return {
        "alice": await users.create("Alice", "9000000001", None, Role.CUSTOMER),
        "bob": await users.create("Bob", "9000000002", None, Role.CUSTOMER),
        "eve": await users.create("Eve", "9000000003", None, Role.CUSTOMER),
        "admin": await users.create("Admin", "9000000009", None, Role.ADMIN),
    }


@pytest_asyncio.fixture
async def device(store, people):
    return await store.device_repo.create(CODE, "Tank", people["alice"].id, None, utc_now())


# ----- share -----
async def test_share_then_recipient_sees_it(ledger, people, device):
    recipient = await ledger.share(device.id, people["alice"], "+91 90000-00002")
    assert recipient.id == people["bob"].id

    received = await ledger.list_received_by(people["bob"], people["bob"].id)
    assert len(received) == 1
    assert received[0].owner_name == "Alice"
    assert received[0].device_code == CODE

    sent = await ledger.list_sent_by(people["alice"], people["alice"].id)
    assert [s.recipient_phone for s in sent] == ["9000000002"]


async def test_duplicate_share_conflicts_and_keeps_one_grant(ledger, store, people, device):
    await ledger.share(device.id, people["alice"], "9000000002")
    with pytest.raises(AlreadyShared):
        await ledger.share(device.id, people["alice"], "9000000002")
    assert len(store.shares) == 1


async def test_share_validation_order(ledger, store, people, device):
    with pytest.raises(InvalidPhone):
        await ledger.share(device.id, people["alice"], "12345")
    with pytest.raises(RecipientNotFound):
        await ledger.share(device.id, people["alice"], "9111111111")
    # Admins are not valid recipients
    with pytest.raises(RecipientNotFound):
        await ledger.share(device.id, people["alice"], "9000000009")
    with pytest.raises(InvalidInput):
        await ledger.share(device.id, people["alice"], "9000000001")
    with pytest.raises(NotOwner):
        await ledger.share(device.id, people["eve"], "9000000002")


async def test_non_owner_learns_nothing_about_recipient_phones(ledger, people, device):
    # Ownership is decided before the phone is validated or looked up
    for phone in ("9111111111", "12345", "9000000002"):
        with pytest.raises(NotOwner) as excinfo:
            await ledger.share(device.id, people["eve"], phone)
        assert excinfo.value.message == "You can only share devices that belong to you"


async def test_share_of_unknown_device_is_not_owner(ledger, people):
    with pytest.raises(NotOwner):
        await ledger.share(uuid.uuid4(), people["alice"], "9111111111")


async def test_share_rechecks_owner_at_write_time(ledger, store, people, device):
    # Device moved to Eve after Alice loaded the page
    await store.device_repo.set_owner(CODE, people["eve"].id, utc_now())
    with pytest.raises(NotOwner):
        await ledger.share(device.id, people["alice"], "9000000002")


# ----- revoke -----
async def test_revoke_empties_received_list_and_keeps_owner(ledger, store, people, device):
    await ledger.share(device.id, people["alice"], "9000000002")
    await ledger.revoke(CODE, people["alice"], people["bob"].id)
    assert await ledger.list_received_by(people["bob"], people["bob"].id) == []
    assert (await store.device_repo.get(device.id)).owner_id == people["alice"].id


async def test_revoke_errors(ledger, people, device):
    await ledger.share(device.id, people["alice"], "9000000002")
    with pytest.raises(NotOwner):
        await ledger.revoke(CODE, people["eve"], people["bob"].id)
    with pytest.raises(DeviceNotFound):
        await ledger.revoke("6543210987654321", people["alice"], people["bob"].id)
    with pytest.raises(UserNotFound):
        await ledger.revoke(CODE, people["alice"], uuid.uuid4())
    with pytest.raises(GrantNotFound):
        await ledger.revoke(CODE, people["alice"], people["eve"].id)
    # Administrators may revoke any grant
    await ledger.revoke(CODE, people["admin"], people["bob"].id)


async def test_lists_are_self_only_for_customers(ledger, people):
    with pytest.raises(Forbidden):
        await ledger.list_sent_by(people["eve"], people["alice"].id)
    with pytest.raises(Forbidden):
        await ledger.list_received_by(people["eve"], people["bob"].id)
    assert await ledger.list_received_by(people["admin"], people["bob"].id) == []


async def test_device_deletion_removes_grants(ledger, store, people, device):
    await ledger.share(device.id, people["alice"], "9000000002")
    await store.device_repo.delete(CODE)
    assert await ledger.list_received_by(people["bob"], people["bob"].id) == []


async def test_owner_deletion_unassigns_device_and_drops_grants(ledger, store, people, device):
    await ledger.share(device.id, people["alice"], "9000000002")
    await store.user_repo.delete(people["alice"].id)
    left = await store.device_repo.get(device.id)
    assert left is not None
    assert left.owner_id is None
    assert left.is_active is False
    assert await ledger.list_received_by(people["bob"], people["bob"].id) == []


# ----- access evaluator -----
async def test_visibility_owner_stranger_shared_revoked(ledger, access, people, device):
    alice, bob, eve, admin = people["alice"], people["bob"], people["eve"], people["admin"]
    assert await access.can_access(alice, device) is True
    assert await access.can_access(bob, device) is False
    assert await access.can_access(eve, device) is False
    assert await access.can_access(admin, device) is True

    await ledger.share(device.id, alice, bob.phone)
    assert await access.can_access(bob, device) is True
    assert await access.can_access(eve, device) is False

    await ledger.revoke(CODE, alice, bob.id)
    assert await access.can_access(bob, device) is False


async def test_unowned_device_is_visible_to_admins_only(store, access, people):
    unowned = await store.device_repo.create("1111111111111111", "Spare", None, None, utc_now())
    assert await access.can_access(people["alice"], unowned) is False
    assert await access.can_access(people["admin"], unowned) is True

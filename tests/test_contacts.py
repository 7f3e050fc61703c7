import uuid

import pytest

from contactbook.core.errors import Forbidden, Unauthorized, ValidationFailed
from contactbook.db.models import ContactShare
from contactbook.domains.contacts import ContactsService


def _contact(**extra):
    return {"first_name": "Ann", "last_name": "Lee", **extra}


@pytest.fixture
def service(session):
    return ContactsService(session)


async def _shares(session, contact_id):
    service = ContactsService(session)
    return await service.shares.find({"contact_id": contact_id})


@pytest.mark.asyncio
async def test_create_defaults_owner_to_actor(service, make_user, ctx):
    owner = await make_user()

    created = await service.create(_contact(), ctx(owner))

    assert created["owner_id"] == owner.id
    assert created["created_by"] == owner.id
    assert created["shared_with"] == []


@pytest.mark.asyncio
async def test_create_normalizes_shared_with(service, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    bob = await make_user()

    created = await service.create(
        _contact(shared_with=[str(alice.id), alice.id, "garbage", owner.id, bob.id]),
        ctx(owner),
    )

    assert sorted(created["shared_with"]) == sorted([alice.id, bob.id])


@pytest.mark.asyncio
async def test_requires_authenticated_actor(service, make_user, ctx):
    owner = await make_user()
    created = await service.create(_contact(), ctx(owner))

    with pytest.raises(Unauthorized):
        await service.create(_contact(), ctx())
    with pytest.raises(Unauthorized):
        await service.find_all({}, ctx())
    with pytest.raises(Unauthorized):
        await service.find_by_id(created["id"], ctx())
    with pytest.raises(Unauthorized):
        await service.update(created["id"], {"note": "x"}, ctx())
    with pytest.raises(Unauthorized):
        await service.remove(created["id"], ctx())


@pytest.mark.asyncio
async def test_visibility_of_owned_and_shared_contacts(service, make_user, ctx):
    owner = await make_user()
    friend = await make_user()
    stranger = await make_user()
    shared = await service.create(_contact(first_name="Shared", shared_with=[friend.id]), ctx(owner))
    private = await service.create(_contact(first_name="Private"), ctx(owner))
    own = await service.create(_contact(first_name="Own"), ctx(friend))

    assert {c["id"] for c in await service.find_all({}, ctx(owner))} == {shared["id"], private["id"]}
    assert {c["id"] for c in await service.find_all({}, ctx(friend))} == {shared["id"], own["id"]}
    assert await service.find_all({}, ctx(stranger)) == []

    seen = await service.find_by_id(shared["id"], ctx(friend))
    assert seen["shared_with"] == [friend.id]

    with pytest.raises(Forbidden):
        await service.find_by_id(private["id"], ctx(friend))
    with pytest.raises(Forbidden):
        await service.find_by_id(shared["id"], ctx(stranger))


@pytest.mark.asyncio
async def test_caller_filter_is_combined_with_visibility(service, make_user, ctx):
    owner = await make_user()
    other = await make_user()
    await service.create(_contact(first_name="Ann"), ctx(owner))
    await service.create(_contact(first_name="Bob"), ctx(owner))
    await service.create(_contact(first_name="Bob"), ctx(other))

    found = await service.find_all({"first_name": "Bob"}, ctx(owner))

    assert len(found) == 1
    assert found[0]["owner_id"] == owner.id


@pytest.mark.asyncio
async def test_only_owner_can_modify(service, make_user, ctx):
    owner = await make_user()
    friend = await make_user()
    created = await service.create(_contact(shared_with=[friend.id]), ctx(owner))

    with pytest.raises(Forbidden):
        await service.update(created["id"], {"note": "hi"}, ctx(friend))
    with pytest.raises(Forbidden):
        await service.update(created["id"], {"shared_with": []}, ctx(friend))
    with pytest.raises(Forbidden):
        await service.remove(created["id"], ctx(friend))

    assert [s.user_id for s in await _shares(service.session, created["id"])] == [friend.id]


@pytest.mark.asyncio
async def test_update_reconciles_and_keeps_untouched_shares(service, session, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    created = await service.create(_contact(shared_with=[alice.id, bob.id]), ctx(owner))
    before = {s.user_id: (s.id, s.created_at) for s in await _shares(session, created["id"])}

    updated = await service.update(created["id"], {"shared_with": [bob.id, carol.id]}, ctx(owner))

    assert sorted(updated["shared_with"]) == sorted([bob.id, carol.id])
    after = {s.user_id: (s.id, s.created_at) for s in await _shares(session, created["id"])}
    assert after[bob.id] == before[bob.id]
    assert alice.id not in after


@pytest.mark.asyncio
async def test_update_without_shared_with_leaves_shares(service, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    created = await service.create(_contact(shared_with=[alice.id]), ctx(owner))

    updated = await service.update(created["id"], {"note": "met at conf"}, ctx(owner))

    assert updated["note"] == "met at conf"
    assert updated["shared_with"] == [alice.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [[], None])
async def test_empty_shared_with_revokes_everyone(service, make_user, ctx, value):
    owner = await make_user()
    alice = await make_user()
    bob = await make_user()
    created = await service.create(_contact(shared_with=[alice.id, bob.id]), ctx(owner))

    updated = await service.update(created["id"], {"shared_with": value}, ctx(owner))

    assert updated["shared_with"] == []
    assert await service.find_all({}, ctx(alice)) == []


@pytest.mark.asyncio
async def test_shared_with_must_be_a_list(service, make_user, ctx):
    owner = await make_user()

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create(_contact(shared_with="everyone"), ctx(owner))

    assert exc_info.value.errors[0].path == "shared_with"


@pytest.mark.asyncio
async def test_shared_with_type_is_checked_after_authorization(service, make_user, ctx):
    owner = await make_user()
    friend = await make_user()
    created = await service.create(_contact(shared_with=[friend.id]), ctx(owner))

    with pytest.raises(Forbidden):
        await service.update(created["id"], {"shared_with": "x"}, ctx(friend))
    assert await service.update(uuid.uuid4(), {"shared_with": "x"}, ctx(owner)) is None

    with pytest.raises(ValidationFailed) as exc_info:
        await service.update(created["id"], {"shared_with": "x", "first_name": ""}, ctx(owner))
    assert {e.path for e in exc_info.value.errors} == {"shared_with", "first_name"}

    unchanged = await service.find_by_id(created["id"], ctx(owner))
    assert unchanged["first_name"] == "Ann"
    assert unchanged["shared_with"] == [friend.id]


@pytest.mark.asyncio
async def test_invalid_contact_fields_are_rejected(service, make_user, ctx):
    owner = await make_user()

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create({"first_name": "  ", "email": "not-an-email"}, ctx(owner))

    paths = {error.path for error in exc_info.value.errors}
    assert {"first_name", "last_name", "email"} <= paths


@pytest.mark.asyncio
async def test_owner_cannot_be_removed(service, make_user, ctx):
    owner = await make_user()
    created = await service.create(_contact(), ctx(owner))

    with pytest.raises(ValidationFailed):
        await service.update(created["id"], {"owner_id": None}, ctx(owner))


@pytest.mark.asyncio
async def test_new_owner_loses_share(service, session, make_user, ctx):
    owner = await make_user()
    heir = await make_user()
    alice = await make_user()
    created = await service.create(_contact(shared_with=[heir.id, alice.id]), ctx(owner))

    updated = await service.update(created["id"], {"owner_id": heir.id}, ctx(owner))

    assert updated["owner_id"] == heir.id
    assert updated["shared_with"] == [alice.id]
    # бывший владелец больше не видит контакт
    with pytest.raises(Forbidden):
        await service.find_by_id(created["id"], ctx(owner))


@pytest.mark.asyncio
async def test_remove_drops_all_shares(service, session, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    created = await service.create(_contact(shared_with=[alice.id]), ctx(owner))

    removed = await service.remove(created["id"], ctx(owner))

    assert removed["id"] == created["id"]
    assert removed["shared_with"] == []
    assert await _shares(session, created["id"]) == []
    assert await service.find_by_id(created["id"], ctx(owner)) is None
    assert await service.find_all({}, ctx(alice)) == []


@pytest.mark.asyncio
async def test_missing_contact_returns_none(service, make_user, ctx):
    owner = await make_user()
    missing = uuid.uuid4()

    assert await service.find_by_id(missing, ctx(owner)) is None
    assert await service.update(missing, {"note": "x"}, ctx(owner)) is None
    assert await service.remove(missing, ctx(owner)) is None


@pytest.mark.asyncio
async def test_reconcile_shares_is_idempotent(service, session, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    bob = await make_user()
    created = await service.create(_contact(), ctx(owner))

    first = await service.reconcile_shares(created["id"], [alice.id, bob.id, alice.id], owner.id, owner.id)
    second = await service.reconcile_shares(created["id"], [bob.id, alice.id], owner.id, owner.id)

    assert first.added == [alice.id, bob.id]
    assert first.removed == []
    assert not second.changed

    shares = await _shares(session, created["id"])
    assert {s.user_id for s in shares} == {alice.id, bob.id}
    assert all(s.shared_by == owner.id for s in shares)


@pytest.mark.asyncio
async def test_reconcile_shares_removes_extra_users(service, session, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    bob = await make_user()
    created = await service.create(_contact(shared_with=[alice.id, bob.id]), ctx(owner))

    diff = await service.reconcile_shares(created["id"], [bob.id, owner.id], owner.id)

    assert diff.added == []
    assert diff.removed == [alice.id]
    assert [s.user_id for s in await _shares(session, created["id"])] == [bob.id]


@pytest.mark.asyncio
async def test_map_shares_groups_by_contact(service, make_user, ctx):
    owner = await make_user()
    alice = await make_user()
    first = await service.create(_contact(shared_with=[alice.id]), ctx(owner))
    second = await service.create(_contact(), ctx(owner))

    mapping = await service.map_shares([first["id"], second["id"]])

    assert mapping == {first["id"]: [alice.id]}
    assert await service.map_shares([]) == {}


@pytest.mark.asyncio
async def test_share_rows_are_unique_per_user(session, make_user, ctx):
    service = ContactsService(session)
    owner = await make_user()
    alice = await make_user()
    created = await service.create(_contact(shared_with=[alice.id]), ctx(owner))

    rows = await service.shares.find({"contact_id": created["id"], "user_id": alice.id})

    assert len(rows) == 1
    assert isinstance(rows[0], ContactShare)

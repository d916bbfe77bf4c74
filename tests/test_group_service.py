import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.modules.group_messages.service import GroupMessageService
from app.modules.groups.service import GroupService
from app.modules.users.service import UserService


@pytest.fixture
def service(users):
    return GroupService(users)


def test_create_group_trims_name_and_starts_empty(service):
    group = service.create_group("  Cohort-1 ", "admin")
    assert group.name == "Cohort-1"
    assert group.members == []
    assert group.created_by == "admin"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_group_requires_name(service, name):
    with pytest.raises(ValidationError):
        service.create_group(name, "admin")


def test_add_member_by_email_then_is_member(service):
    group = service.create_group("Cohort-1", "admin")

    updated = service.add_member_by_email(group.id, "u1@EXAMPLE.com")

    assert updated.members == ["u1"]
    assert service.is_member(group.id, "u1")
    assert not service.is_member(group.id, "u2")


def test_adding_existing_member_is_a_noop(service):
    group = service.create_group("Cohort-1", "admin")
    service.add_member_by_email(group.id, "u1@example.com")

    again = service.add_member_by_email(group.id, "u1@example.com")

    assert again.members == ["u1"]


def test_add_member_unknown_email(service):
    group = service.create_group("Cohort-1", "admin")
    with pytest.raises(NotFoundError):
        service.add_member_by_email(group.id, "nobody@example.com")


def test_add_member_requires_premium(service):
    group = service.create_group("Cohort-1", "admin")
    with pytest.raises(ValidationError):
        service.add_member_by_email(group.id, "free@example.com")


def test_add_member_unknown_group(service):
    with pytest.raises(NotFoundError):
        service.add_member_by_email("missing", "u1@example.com")


def test_remove_member_then_not_member(service):
    group = service.create_group("Cohort-1", "admin")
    service.add_member_by_email(group.id, "u1@example.com")
    service.add_member_by_email(group.id, "u2@example.com")

    updated = service.remove_member(group.id, "u1")

    assert updated.members == ["u2"]
    assert not service.is_member(group.id, "u1")
    # removing again is a no-op
    assert service.remove_member(group.id, "u1").members == ["u2"]


def test_list_groups_for_member(service):
    first = service.create_group("Cohort-1", "admin")
    service.create_group("Cohort-2", "admin")
    service.add_member_by_email(first.id, "u1@example.com")

    assert [g.name for g in service.list_groups(member_id="u1")] == ["Cohort-1"]
    assert [g.name for g in service.list_groups()] == ["Cohort-2", "Cohort-1"]


def test_delete_group_cascades_to_messages(users, service):
    group = service.create_group("Cohort-1", "admin")
    service.add_member_by_email(group.id, "u1@example.com")
    group = service.get_group(group.id)
    messages = GroupMessageService(users)
    sender = UserService(users).get_user_by_id("u1")
    admin = UserService(users).get_user_by_id("admin")
    for text in ("one", "two", "three"):
        messages.create_message(group, sender, text=text)

    service.delete_group(group.id)

    with pytest.raises(NotFoundError):
        service.get_group(group.id)
    assert messages.list_messages(group, admin, page=1, limit=50) == []
    assert users.rows("group_messages") == []
    assert users.rows("group_members") == []


def test_delete_missing_group(service):
    with pytest.raises(NotFoundError):
        service.delete_group("missing")


def test_concurrent_adds_both_land(service, monkeypatch):
    group = service.create_group("Cohort-1", "admin")
    # both admins loaded the group before either change was written
    stale = service.get_group(group.id)
    monkeypatch.setattr(service, "get_group", lambda group_id: stale)

    service.add_member_by_email(group.id, "u1@example.com")
    service.add_member_by_email(group.id, "u2@example.com")

    monkeypatch.undo()
    assert service.get_group(group.id).members == ["u1", "u2"]


def test_concurrent_add_and_remove_do_not_overwrite(service, monkeypatch):
    group = service.create_group("Cohort-1", "admin")
    service.add_member_by_email(group.id, "u1@example.com")
    stale = service.get_group(group.id)
    monkeypatch.setattr(service, "get_group", lambda group_id: stale)

    service.add_member_by_email(group.id, "u2@example.com")
    service.remove_member(group.id, "u1")

    monkeypatch.undo()
    assert service.get_group(group.id).members == ["u2"]


def test_membership_rows_are_unique(users, service):
    group = service.create_group("Cohort-1", "admin")
    for _ in range(3):
        service.add_member_by_email(group.id, "u1@example.com")
    assert len(users.rows("group_members")) == 1


def test_malformed_group_id_is_not_found(users, service):
    users.uuid_columns = {"groups.id", "group_members.group_id"}

    with pytest.raises(NotFoundError):
        service.get_group("abc")
    with pytest.raises(NotFoundError):
        service.add_member_by_email("abc", "u1@example.com")
    assert service.is_member("abc", "u1") is False

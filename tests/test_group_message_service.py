import asyncio
import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.config import settings
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.modules.group_messages.service import GroupMessageService
from app.modules.groups.service import GroupService
from app.modules.users.service import UserService


@pytest.fixture
def group(users):
    service = GroupService(users)
    group = service.create_group("Cohort-1", "admin")
    service.add_member_by_email(group.id, "u1@example.com")
    return service.get_group(group.id)


@pytest.fixture
def people(users):
    profiles = UserService(users)
    return {uid: profiles.get_user_by_id(uid) for uid in ("admin", "u1", "u2")}


@pytest.fixture
def service(users, storage):
    return GroupMessageService(users, storage)


def upload(content, filename, content_type):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_create_text_message(service, group, people):
    message = service.create_message(group, people["u1"], text="  hi  ")

    assert message.text == "hi"
    assert message.group_id == group.id
    assert message.sender_id == "u1"
    assert message.media is None
    assert message.sender.full_name == "U1"


@pytest.mark.parametrize("text", [None, "", "   "])
def test_message_needs_text_or_media(service, group, people, text):
    with pytest.raises(ValidationError):
        service.create_message(group, people["u1"], text=text)


def test_non_member_cannot_post(service, group, people):
    with pytest.raises(AuthorizationError):
        service.create_message(group, people["u2"], text="hi")


def test_admin_can_post_without_membership(service, group, people):
    assert service.create_message(group, people["admin"], text="welcome").sender_id == "admin"


def test_list_messages_pages_newest_first_each_page_chronological(service, group, people):
    for n in range(5):
        service.create_message(group, people["u1"], text=f"m{n}")

    assert [m.text for m in service.list_messages(group, people["u1"], page=1, limit=2)] == ["m3", "m4"]
    assert [m.text for m in service.list_messages(group, people["u1"], page=2, limit=2)] == ["m1", "m2"]
    assert [m.text for m in service.list_messages(group, people["u1"], page=3, limit=2)] == ["m0"]
    assert service.list_messages(group, people["u1"], page=4, limit=2) == []


def test_list_messages_clamps_page_and_limit(service, group, people):
    for n in range(3):
        service.create_message(group, people["u1"], text=f"m{n}")

    assert len(service.list_messages(group, people["u1"], page=0, limit=0)) == 3
    assert len(service.list_messages(group, people["u1"], page=-5, limit=1000)) == 3


def test_list_messages_requires_read_access(service, group, people):
    with pytest.raises(AuthorizationError):
        service.list_messages(group, people["u2"])


def test_listed_messages_carry_sender(service, group, people):
    service.create_message(group, people["u1"], text="hi")
    [message] = service.list_messages(group, people["u1"])
    assert message.sender.id == "u1"
    assert message.sender.email == "u1@example.com"


def test_delete_message_admin_only(service, group, people):
    message = service.create_message(group, people["u1"], text="hi")

    with pytest.raises(AuthorizationError):
        service.delete_message(message.id, people["u1"])

    service.delete_message(message.id, people["admin"])
    assert service.list_messages(group, people["admin"]) == []
    with pytest.raises(NotFoundError):
        service.delete_message(message.id, people["admin"])


def test_create_media_message(service, storage, group, people):
    message = asyncio.run(service.create_media_message(
        group, people["u1"], upload(b"\x89PNG...", "Slide.PNG", "image/png"), text="look"
    ))

    assert message.text == "look"
    assert message.media.type == "image"
    assert message.media.mimetype == "image/png"
    assert message.media.size == 7
    assert message.media.key.startswith(f"group-media/group-{group.id}-")
    assert message.media.key.endswith(".png")
    assert message.media.url == f"https://media.test/{message.media.key}"
    assert message.media.key in storage.objects


def test_pdf_is_a_file_attachment(service, group, people):
    message = asyncio.run(service.create_media_message(
        group, people["u1"], upload(b"%PDF-1.7", "notes.pdf", "application/pdf")
    ))
    assert message.media.type == "file"
    assert message.text is None


def test_media_type_allowlist(service, storage, group, people):
    with pytest.raises(ValidationError):
        asyncio.run(service.create_media_message(
            group, people["u1"], upload(b"MZ", "tool.exe", "application/x-msdownload")
        ))
    assert storage.objects == {}


def test_media_size_limit(service, storage, group, people, monkeypatch):
    monkeypatch.setattr(settings, "media_max_bytes", 4)
    with pytest.raises(ValidationError):
        asyncio.run(service.create_media_message(
            group, people["u1"], upload(b"12345", "a.txt", "text/plain")
        ))
    assert storage.objects == {}


def test_deleting_media_message_removes_stored_object(service, storage, group, people):
    message = asyncio.run(service.create_media_message(
        group, people["u1"], upload(b"hello", "a.txt", "text/plain")
    ))
    service.delete_message(message.id, people["admin"])
    assert storage.deleted == [message.media.key]


def test_malformed_message_id_is_not_found(users, service):
    users.uuid_columns = {"group_messages.id"}
    with pytest.raises(NotFoundError):
        service.get_message("not-a-uuid")

"""역할 -> 권한 매핑과 공개 포럼 인덱스 가시성을 검증하는 자동화 테스트입니다."""

from forum_engine.models.user import User
from forum_engine.services import thread_service
from forum_engine.utils import permissions
from tests.conftest import auth_headers


def test_role_capabilities():
    admin = User(user_id=1, username="a", nickname="a", role="admin", is_active=True)
    moderator = User(user_id=2, username="m", nickname="m", role="moderator", is_active=True)
    member = User(user_id=3, username="u", nickname="u", role="member", is_active=True)

    assert permissions.can(admin, permissions.ACP_DELETE)
    assert not permissions.can(moderator, permissions.ACP_CREATE)
    assert permissions.can(moderator, permissions.REVIEW_REPORTS)
    assert permissions.can(moderator, permissions.RESTORE_REVISION)
    assert not permissions.can(member, permissions.MODERATE)
    assert not permissions.can(None, permissions.VIEW_HISTORY)
    assert permissions.is_author(member, 3)
    assert not permissions.is_author(member, 2)


def test_inactive_user_has_no_capabilities():
    admin = User(user_id=1, username="a", nickname="a", role="admin", is_active=False)
    assert not permissions.can(admin, permissions.MODERATE)


def test_unknown_role_has_no_capabilities():
    stranger = User(user_id=9, username="s", nickname="s", role="guest", is_active=True)
    assert not permissions.is_moderator(stranger)


def test_forum_index_counts_only_visible_threads(client, db, seed_users, seed_board, seed_thread):
    thread_service.unpublish(db, seed_thread, seed_users["moderator"])

    public = client.get("/api/forum")
    assert public.status_code == 200
    assert public.json()[0]["boards"][0]["thread_count"] == 0

    moderated = client.get("/api/forum", headers=auth_headers(client, "mod"))
    assert moderated.json()[0]["boards"][0]["thread_count"] == 1
    assert moderated.json()[0]["boards"][0]["post_count"] == 1


def test_thread_permissions_payload(client, seed_users, seed_board, seed_thread):
    url = f"/api/forum/boards/{seed_board.id}/threads/{seed_thread.id}"

    author = client.get(url, headers=auth_headers(client, "alice")).json()["permissions"]
    assert author["canEdit"] is True
    assert author["canReport"] is False
    assert author["canModerate"] is False

    other = client.get(url, headers=auth_headers(client, "bob")).json()["permissions"]
    assert other["canEdit"] is False
    assert other["canReport"] is True
    assert other["canReply"] is True

    anonymous = client.get(url).json()["permissions"]
    assert anonymous["canReply"] is False

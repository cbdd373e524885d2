from datetime import timedelta

import pytest

from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.audit_log import AuditLog
from forum_engine.models.forum import ForumPost, ForumThread
from forum_engine.schemas.forum import ThreadCreate
from forum_engine.services import audit_service, post_service, read_service, thread_service
from tests.conftest import auth_headers


def _events(db, thread_id, event_name=None):
    return audit_service.list_events(db, subject_type="forum_thread", subject_id=thread_id, event_name=event_name)


def test_create_thread_sets_initial_post_and_pointer(db, seed_users, seed_thread):
    alice = seed_users["alice"]
    posts = db.query(ForumPost).filter(ForumPost.thread_id == seed_thread.id).all()
    assert len(posts) == 1
    assert seed_thread.last_post_user_id == alice.user_id
    assert seed_thread.last_posted_at == posts[0].created_at
    assert seed_thread.excerpt == "Opening post"
    assert seed_thread.slug.startswith("first-thread-")
    assert seed_thread.is_published is True


def test_create_thread_rejects_blank_title_and_body(db, seed_users, seed_board):
    with pytest.raises(ValidationError):
        thread_service.create_thread(db, seed_board.id, ThreadCreate(title="   ", body="body"), seed_users["alice"])
    with pytest.raises(ValidationError):
        thread_service.create_thread(db, seed_board.id, ThreadCreate(title="Title", body="<p> </p>"), seed_users["alice"])


def test_lock_twice_emits_single_event(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]

    thread_service.lock(db, seed_thread, moderator)
    thread_service.lock(db, seed_thread, moderator)

    db.refresh(seed_thread)
    assert seed_thread.is_locked is True
    events = _events(db, seed_thread.id, "forum.thread.locked")
    assert len(events) == 1
    payload = audit_service.to_response(events[0])
    assert payload["before"] == {"is_locked": False}
    assert payload["after"] == {"is_locked": True}
    assert payload["actor_id"] == moderator.user_id


def test_noop_toggles_emit_nothing(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    thread_service.publish(db, seed_thread, moderator)
    thread_service.unlock(db, seed_thread, moderator)
    thread_service.unpin(db, seed_thread, moderator)
    assert _events(db, seed_thread.id) == []


def test_flags_toggle_independently(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    thread_service.pin(db, seed_thread, moderator)
    thread_service.lock(db, seed_thread, moderator)
    thread_service.unpublish(db, seed_thread, moderator)
    thread_service.unlock(db, seed_thread, moderator)

    db.refresh(seed_thread)
    assert (seed_thread.is_pinned, seed_thread.is_locked, seed_thread.is_published) == (True, False, False)
    names = [e.event_name for e in _events(db, seed_thread.id)]
    assert names == [
        "forum.thread.pinned",
        "forum.thread.locked",
        "forum.thread.unpublished",
        "forum.thread.unlocked",
    ]


def test_member_cannot_toggle_flags(db, seed_users, seed_thread):
    with pytest.raises(ForbiddenError):
        thread_service.lock(db, seed_thread, seed_users["alice"])


def test_author_title_edit_blocked_when_locked(db, seed_users, seed_thread):
    alice = seed_users["alice"]
    thread_service.update_title(db, seed_thread, "  Renamed  ", alice)
    assert seed_thread.title == "Renamed"

    thread_service.lock(db, seed_thread, seed_users["moderator"])
    with pytest.raises(ForbiddenError):
        thread_service.update_title(db, seed_thread, "Again", alice)

    thread_service.update_title(db, seed_thread, "Moderated", seed_users["moderator"])
    assert seed_thread.title == "Moderated"
    assert len(_events(db, seed_thread.id, "forum.thread.title_updated")) == 2


def test_title_edit_validation_and_noop(db, seed_users, seed_thread):
    alice = seed_users["alice"]
    with pytest.raises(ValidationError):
        thread_service.update_title(db, seed_thread, "   ", alice)
    thread_service.update_title(db, seed_thread, "First thread", alice)
    assert _events(db, seed_thread.id) == []


def test_other_member_cannot_edit_title(db, seed_users, seed_thread):
    with pytest.raises(ForbiddenError):
        thread_service.update_title(db, seed_thread, "Hijack", seed_users["bob"])


def test_delete_thread_records_snapshot(db, seed_users, seed_thread):
    thread_id = seed_thread.id
    title = seed_thread.title
    slug = seed_thread.slug

    thread_service.delete_thread(db, seed_thread, seed_users["moderator"])

    assert db.query(ForumThread).filter(ForumThread.id == thread_id).first() is None
    assert db.query(ForumPost).filter(ForumPost.thread_id == thread_id).count() == 0
    event = db.query(AuditLog).filter(AuditLog.event_name == "forum.thread.deleted").one()
    payload = audit_service.to_response(event)
    assert payload["subject_id"] == thread_id
    assert payload["before"] == {"id": thread_id, "title": title, "slug": slug}


def test_advance_last_post_ignores_older_post(db, seed_users, seed_thread):
    alice = seed_users["alice"]
    bob = seed_users["bob"]
    base = seed_thread.created_at
    newer = ForumPost(thread_id=seed_thread.id, author_id=bob.user_id, body="newer", created_at=base + timedelta(seconds=2))
    older = ForumPost(thread_id=seed_thread.id, author_id=alice.user_id, body="older", created_at=base + timedelta(seconds=1))

    # newer 쪽이 먼저 커밋되는 경우
    assert thread_service.advance_last_post(seed_thread, newer) is True
    assert thread_service.advance_last_post(seed_thread, older) is False

    assert seed_thread.last_posted_at == max(newer.created_at, older.created_at)
    assert seed_thread.last_post_user_id == bob.user_id


def test_refresh_last_post_falls_back_to_thread_creation(db, seed_users, seed_thread):
    reply = post_service.create_post(db, seed_thread, "reply", seed_users["bob"])
    db.refresh(seed_thread)
    assert seed_thread.last_post_user_id == seed_users["bob"].user_id

    post_service.delete_post(db, reply, seed_users["bob"])
    db.refresh(seed_thread)
    assert seed_thread.last_post_user_id == seed_users["alice"].user_id

    for post in db.query(ForumPost).filter(ForumPost.thread_id == seed_thread.id).all():
        post_service.soft_delete(db, post)
    db.commit()
    db.refresh(seed_thread)
    assert seed_thread.last_posted_at == seed_thread.created_at
    assert seed_thread.last_post_user_id == seed_thread.author_id


def test_list_threads_orders_pinned_first_and_hides_unpublished(db, seed_users, seed_board, seed_thread):
    moderator = seed_users["moderator"]
    alice = seed_users["alice"]
    second = thread_service.create_thread(db, seed_board.id, ThreadCreate(title="Second", body="b"), alice)
    hidden = thread_service.create_thread(db, seed_board.id, ThreadCreate(title="Hidden", body="c"), alice)
    thread_service.pin(db, seed_thread, moderator)
    thread_service.unpublish(db, hidden, moderator)

    anonymous = thread_service.list_threads(db, seed_board.id, None)
    assert [t.id for t in anonymous["data"]] == [seed_thread.id, second.id]
    assert anonymous["total"] == 2

    moderated = thread_service.list_threads(db, seed_board.id, moderator)
    assert {t.id for t in moderated["data"]} == {seed_thread.id, second.id, hidden.id}
    assert moderated["data"][0].id == seed_thread.id

    searched = thread_service.list_threads(db, seed_board.id, None, search="second")
    assert [t.id for t in searched["data"]] == [second.id]


def test_open_thread_counts_views_and_hides_unpublished(db, seed_users, seed_board, seed_thread):
    thread_service.open_thread(db, seed_board.id, seed_thread.id, None)
    opened = thread_service.open_thread(db, seed_board.id, seed_thread.id, seed_users["bob"])
    assert opened.views == 2
    assert opened.reply_count == 0

    thread_service.unpublish(db, seed_thread, seed_users["moderator"])
    with pytest.raises(NotFoundError):
        thread_service.open_thread(db, seed_board.id, seed_thread.id, seed_users["bob"])
    assert thread_service.open_thread(db, seed_board.id, seed_thread.id, seed_users["moderator"]).id == seed_thread.id


def test_open_thread_rejects_board_mismatch(db, seed_users, seed_thread):
    with pytest.raises(NotFoundError):
        thread_service.open_thread(db, seed_thread.board_id + 999, seed_thread.id, None)


def test_thread_api_moderation_flow(client, db, seed_users, seed_board):
    alice = auth_headers(client, "alice")
    mod = auth_headers(client, "mod")

    resp = client.post(
        f"/api/forum/boards/{seed_board.id}/threads",
        json={"title": "API thread", "body": "hello"},
        headers=alice,
    )
    assert resp.status_code == 200, resp.text
    thread_id = resp.json()["id"]
    base = f"/api/forum/boards/{seed_board.id}/threads/{thread_id}"

    assert client.post(f"{base}/lock", headers=alice).status_code == 403
    locked = client.post(f"{base}/lock", headers=mod)
    assert locked.status_code == 200
    assert locked.json()["is_locked"] is True
    assert client.post(f"{base}/explode", headers=mod).status_code == 404

    assert client.post(f"{base}/unpublish", headers=mod).status_code == 200
    assert client.get(base).status_code == 404
    assert client.get(base, headers=alice).status_code == 404
    detail = client.get(base, headers=mod)
    assert detail.status_code == 200
    assert detail.json()["permissions"]["canModerate"] is True

    read = client.post(f"{base}/read", headers=mod)
    assert read.status_code == 200
    assert read.json()["thread_id"] == thread_id

    assert client.delete(base, headers=mod).status_code == 200
    assert client.get(base, headers=mod).status_code == 404


def test_unread_ordering_uses_read_post_time(db, seed_users, seed_board):
    alice = seed_users["alice"]
    bob = seed_users["bob"]
    one = thread_service.create_thread(db, seed_board.id, ThreadCreate(title="One", body="a"), alice)
    two = thread_service.create_thread(db, seed_board.id, ThreadCreate(title="Two", body="b"), alice)

    # 읽음 표시가 최신이 아닌 게시글을 가리키면 읽은 시각이 최근이어도 미읽음이다.
    early = ForumPost(thread_id=one.id, author_id=bob.user_id, body="early", created_at=one.created_at - timedelta(hours=1))
    db.add(early)
    db.commit()
    read_service.mark_read(db, one, bob.user_id, early)
    read_service.mark_thread_read(db, two, bob.user_id)
    db.commit()

    listed = thread_service.list_threads(db, seed_board.id, bob)

    assert [t.id for t in listed["data"]] == [one.id, two.id]
    assert [t.has_unread for t in listed["data"]] == [True, False]

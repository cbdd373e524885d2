from datetime import timedelta

import pytest

from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.forum import ForumBoard, ForumPost
from forum_engine.models.report import ForumPostReport, ForumThreadReport
from forum_engine.schemas.forum import ThreadCreate
from forum_engine.services import audit_service, post_service, report_service, thread_service
from forum_engine.utils.helpers import utcnow
from tests.conftest import REPORT_REASONS, TestingSession, auth_headers


def _file(db, reporter, target_type, target_id, reason_category="spam", **kwargs):
    return report_service.file_report(
        db,
        target_type=target_type,
        target_id=target_id,
        reporter=reporter,
        reason_category=reason_category,
        reasons=REPORT_REASONS,
        **kwargs,
    )


def test_configured_reason_is_accepted(db, seed_users, seed_thread):
    report = _file(db, seed_users["bob"], "thread", seed_thread.id, "spam")
    assert report.status == "pending"
    assert report.reason_category == "spam"


def test_unknown_reason_is_rejected(db, seed_users, seed_thread):
    with pytest.raises(ValidationError):
        _file(db, seed_users["bob"], "thread", seed_thread.id, "nonsense")
    assert db.query(ForumThreadReport).count() == 0


def test_malformed_evidence_url_is_rejected(db, seed_users, seed_thread):
    with pytest.raises(ValidationError):
        _file(db, seed_users["bob"], "thread", seed_thread.id, evidence_url="not a url")


def test_refiling_updates_existing_report(db, seed_users, seed_thread):
    bob = seed_users["bob"]
    first = _file(db, bob, "thread", seed_thread.id, "spam", reason="ads", evidence_url="https://example.com/a")
    second = _file(db, bob, "thread", seed_thread.id, "abuse", reason="  ", evidence_url="https://example.com/b")

    assert first.id == second.id
    assert db.query(ForumThreadReport).count() == 1
    row = db.query(ForumThreadReport).one()
    assert row.reason_category == "abuse"
    assert row.reason is None
    assert row.evidence_url == "https://example.com/b"


def test_different_reporters_get_separate_rows(db, seed_users, seed_thread):
    _file(db, seed_users["bob"], "thread", seed_thread.id)
    _file(db, seed_users["moderator"], "thread", seed_thread.id)
    assert db.query(ForumThreadReport).count() == 2


def test_refiling_reopens_reviewed_report(db, seed_users, seed_thread):
    bob = seed_users["bob"]
    report = _file(db, bob, "thread", seed_thread.id)
    report_service.review_report(
        db, target_type="thread", report_id=report.id, status="dismissed", reviewer=seed_users["moderator"]
    )
    again = _file(db, bob, "thread", seed_thread.id, "abuse")
    assert again.status == "pending"
    assert again.reviewed_at is None
    assert again.reviewed_by is None


def test_cannot_report_deleted_post(db, seed_users, seed_thread):
    post = post_service.create_post(db, seed_thread, "reply", seed_users["bob"])
    post_service.delete_post(db, post, seed_users["bob"])
    with pytest.raises(NotFoundError):
        _file(db, seed_users["alice"], "post", post.id)


def test_review_stamps_and_reopen_clears(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)

    reviewed = report_service.review_report(
        db, target_type="thread", report_id=report.id, status="reviewed", reviewer=moderator
    )
    assert reviewed.status == "reviewed"
    assert reviewed.reviewed_at is not None
    assert reviewed.reviewed_by == moderator.user_id

    reopened = report_service.reopen_report(db, target_type="thread", report_id=report.id, reviewer=moderator)
    assert reopened.status == "pending"
    assert reopened.reviewed_at is None
    assert reopened.reviewed_by is None


def test_review_requires_capability(db, seed_users, seed_thread):
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)
    with pytest.raises(ForbiddenError):
        report_service.review_report(
            db, target_type="thread", report_id=report.id, status="reviewed", reviewer=seed_users["alice"]
        )


def test_review_rejects_unknown_status_and_action(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)
    with pytest.raises(ValidationError):
        report_service.review_report(db, target_type="thread", report_id=report.id, status="closed", reviewer=moderator)
    with pytest.raises(ValidationError):
        report_service.review_report(
            db,
            target_type="thread",
            report_id=report.id,
            status="reviewed",
            reviewer=moderator,
            moderation_action="delete_post",
        )


def test_review_applies_thread_action(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)

    report_service.review_report(
        db,
        target_type="thread",
        report_id=report.id,
        status="reviewed",
        reviewer=moderator,
        moderation_action="lock_thread",
    )
    # 이미 잠긴 스레드에 같은 조치를 반복해도 이벤트는 한 번이다.
    report_service.review_report(
        db,
        target_type="thread",
        report_id=report.id,
        status="reviewed",
        reviewer=moderator,
        moderation_action="lock_thread",
    )

    db.refresh(seed_thread)
    assert seed_thread.is_locked is True
    events = audit_service.list_events(db, subject_type="forum_thread", subject_id=seed_thread.id)
    assert [e.event_name for e in events] == ["forum.thread.locked"]


def test_review_none_action_changes_nothing(db, seed_users, seed_thread):
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)
    report_service.review_report(
        db,
        target_type="thread",
        report_id=report.id,
        status="dismissed",
        reviewer=seed_users["moderator"],
        moderation_action="none",
    )
    db.refresh(seed_thread)
    assert (seed_thread.is_locked, seed_thread.is_published) == (False, True)


def test_review_deletes_post_and_skips_vanished_target(db, seed_users, seed_thread):
    moderator = seed_users["moderator"]
    post = post_service.create_post(db, seed_thread, "bad reply", seed_users["bob"])
    first = _file(db, seed_users["alice"], "post", post.id)
    second = _file(db, seed_users["moderator"], "post", post.id)

    report_service.review_report(
        db,
        target_type="post",
        report_id=first.id,
        status="reviewed",
        reviewer=moderator,
        moderation_action="delete_post",
    )
    deleted = post_service.get_post_including_deleted(db, post.id)
    assert deleted.deleted_at is not None

    # 대상이 이미 삭제됐어도 상태 전이는 성공한다.
    reviewed = report_service.review_report(
        db,
        target_type="post",
        report_id=second.id,
        status="reviewed",
        reviewer=moderator,
        moderation_action="delete_post",
    )
    assert reviewed.status == "reviewed"
    assert reviewed.post.id == post.id
    assert db.query(ForumPostReport).count() == 2


def test_list_reports_merges_and_sorts_by_recency(db, seed_users, seed_thread):
    bob = seed_users["bob"]
    post = post_service.create_post(db, seed_thread, "reply", bob)
    thread_report = _file(db, bob, "thread", seed_thread.id)
    post_report = _file(db, seed_users["alice"], "post", post.id, "abuse")
    now = utcnow()
    thread_report.created_at = now - timedelta(hours=1)
    post_report.created_at = now - timedelta(hours=2)
    db.commit()

    result = report_service.list_reports(db, reasons=REPORT_REASONS)
    assert [(row["type"], row["id"]) for row in result["data"]] == [
        ("thread", thread_report.id),
        ("post", post_report.id),
    ]
    assert result["total"] == 2
    assert result["filters"]["status"] == "pending"

    paged = report_service.list_reports(db, reasons=REPORT_REASONS, page=2, per_page=1)
    assert [row["type"] for row in paged["data"]] == ["post"]
    assert paged["last_page"] == 2

    only_posts = report_service.list_reports(db, reasons=REPORT_REASONS, type="post")
    assert [row["id"] for row in only_posts["data"]] == [post_report.id]
    assert only_posts["data"][0]["post"]["body_preview"] == "reply"

    by_reason = report_service.list_reports(db, reasons=REPORT_REASONS, reason_category="spam")
    assert [row["type"] for row in by_reason["data"]] == ["thread"]

    searched = report_service.list_reports(db, reasons=REPORT_REASONS, search="nothing like it")
    assert searched["total"] == 0


def test_list_reports_status_filter(db, seed_users, seed_thread):
    report = _file(db, seed_users["bob"], "thread", seed_thread.id)
    report_service.review_report(
        db, target_type="thread", report_id=report.id, status="dismissed", reviewer=seed_users["moderator"]
    )

    assert report_service.list_reports(db, reasons=REPORT_REASONS)["total"] == 0
    assert report_service.list_reports(db, reasons=REPORT_REASONS, status="all")["total"] == 1
    assert report_service.list_reports(db, reasons=REPORT_REASONS, status="dismissed")["total"] == 1
    with pytest.raises(ValidationError):
        report_service.list_reports(db, reasons=REPORT_REASONS, status="archived")

    summary = report_service.status_summary(db)
    assert summary["dismissed"] == {"threads": 1, "posts": 0, "total": 1}
    assert summary["pending"]["total"] == 0


def test_list_reports_keeps_deleted_post_targets(db, seed_users, seed_thread):
    post = post_service.create_post(db, seed_thread, "reply", seed_users["bob"])
    _file(db, seed_users["alice"], "post", post.id)
    post_service.delete_post(db, post, seed_users["moderator"])

    result = report_service.list_reports(db, reasons=REPORT_REASONS, type="post")
    assert result["total"] == 1
    assert result["data"][0]["post"]["is_deleted"] is True
    assert db.query(ForumPost).filter(ForumPost.id == post.id).count() == 1


def test_report_api_flow(client, db, seed_users, seed_board, seed_thread):
    bob = auth_headers(client, "bob")
    mod = auth_headers(client, "mod")
    base = f"/api/forum/boards/{seed_board.id}/threads/{seed_thread.id}"

    reasons = client.get("/api/forum/report-reasons")
    assert reasons.status_code == 200
    keys = [r["value"] for r in reasons.json()]
    assert "spam" in keys

    filed = client.post(f"{base}/report", json={"reason_category": "spam"}, headers=bob)
    assert filed.status_code == 200, filed.text
    assert filed.json()["type"] == "thread"
    assert client.post(f"{base}/report", json={"reason_category": "nonsense"}, headers=bob).status_code == 422

    assert client.get("/api/forum/reports", headers=bob).status_code == 403
    listing = client.get("/api/forum/reports", headers=mod)
    assert listing.status_code == 200
    assert listing.json()["total"] == 1

    report_id = filed.json()["id"]
    reviewed = client.put(
        f"/api/forum/reports/thread/{report_id}",
        json={"status": "reviewed", "moderation_action": "unpublish_thread"},
        headers=mod,
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "reviewed"
    assert reviewed.json()["thread"]["is_published"] is False
    assert client.get(base, headers=bob).status_code == 404

    summary = client.get("/api/forum/reports/summary", headers=mod)
    assert summary.json()["reviewed"]["threads"] == 1

    reopened = client.post(f"/api/forum/reports/thread/{report_id}/reopen", headers=mod)
    assert reopened.json()["status"] == "pending"
    assert reopened.json()["reviewed_by"] is None


def test_concurrent_first_report_updates_committed_row(db, seed_users, seed_thread, monkeypatch):
    bob = seed_users["bob"]
    real_find = report_service.find_report
    calls = []

    def find_after_competing_insert(session, model, target_id, reporter_id):
        calls.append(target_id)
        if len(calls) == 1:
            # 조회 직후 다른 요청이 같은 (대상, 신고자) 행을 먼저 커밋한 상황
            other = TestingSession()
            try:
                other.add(
                    ForumThreadReport(
                        thread_id=target_id,
                        reporter_id=reporter_id,
                        reason_category="spam",
                        reason="first",
                    )
                )
                other.commit()
            finally:
                other.close()
            return None
        return real_find(session, model, target_id, reporter_id)

    monkeypatch.setattr(report_service, "find_report", find_after_competing_insert)

    report = _file(
        db, bob, "thread", seed_thread.id, "abuse", reason="second", evidence_url="https://example.com/e"
    )

    assert len(calls) == 2
    assert db.query(ForumThreadReport).count() == 1
    row = db.query(ForumThreadReport).one()
    assert row.id == report.id
    assert row.reason == "second"
    assert row.reason_category == "abuse"
    assert row.evidence_url == "https://example.com/e"
    assert row.status == "pending"


def test_list_reports_filters_by_board(db, seed_users, seed_board, seed_thread):
    bob = seed_users["bob"]
    other_board = ForumBoard(category_id=seed_board.category_id, title="Other", slug="other", position=1)
    db.add(other_board)
    db.commit()
    other_thread = thread_service.create_thread(
        db, other_board.id, ThreadCreate(title="Elsewhere", body="x"), seed_users["alice"]
    )
    here = _file(db, bob, "thread", seed_thread.id)
    there = _file(db, bob, "thread", other_thread.id)
    post = post_service.create_post(db, other_thread, "reply", bob)
    post_report = _file(db, seed_users["alice"], "post", post.id)

    this_board = report_service.list_reports(db, reasons=REPORT_REASONS, board_id=seed_board.id)
    assert [(row["type"], row["id"]) for row in this_board["data"]] == [("thread", here.id)]
    assert this_board["filters"]["board_id"] == seed_board.id

    other = report_service.list_reports(db, reasons=REPORT_REASONS, board_id=other_board.id)
    assert {(row["type"], row["id"]) for row in other["data"]} == {("thread", there.id), ("post", post_report.id)}

    with pytest.raises(ValidationError):
        report_service.list_reports(db, reasons=REPORT_REASONS, board_id=other_board.id + 999)

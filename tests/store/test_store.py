"""Tests for Store: ordering, uniqueness, authorization before writes, audit on mutation."""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from portal.access.policy import SYSTEM, visible_content
from portal.models.audit_log import AuditLog
from portal.models.enums import SYSTEM_ACTOR, AuditAction, Collection, Role
from portal.services.errors import (
    DuplicateKey,
    InvalidField,
    InvalidOperation,
    NotFound,
    Unauthorized,
)


def _actions(db):
    return [row.action for row in db.query(AuditLog).order_by(AuditLog.seq).all()]


class TestReads:
    def test_get_all_keeps_insertion_order(self, store, make_content):
        titles = ["Zeta", "Alpha", "Mu"]
        for title in titles:
            make_content(title=title)
        assert [c.title for c in store.get_all(Collection.CONTENT)] == titles

    def test_get_by_id_missing_is_none(self, store):
        assert store.get_by_id(Collection.CONTENT, "nope") is None

    def test_find_by_email_is_case_insensitive(self, store, student):
        found = store.find_by_unique_field(Collection.USERS, "email", "  STUDENT@Example.com ")
        assert found.id == student.id

    def test_find_by_non_unique_field_rejected(self, store):
        with pytest.raises(InvalidField):
            store.find_by_unique_field(Collection.USERS, "name", "Asha")


class TestCreate:
    def test_create_assigns_id_and_audits_system_actor(self, db, store, make_content):
        item = make_content()
        assert item.id
        entry = db.query(AuditLog).order_by(AuditLog.seq.desc()).first()
        assert entry.action == AuditAction.CONTENT_CREATE.value
        assert entry.actor_id == SYSTEM_ACTOR
        assert entry.entity_id == item.id

    def test_duplicate_email_rejected_and_size_unchanged(self, store, make_user, student):
        before = store.count(Collection.USERS)
        with pytest.raises(DuplicateKey):
            make_user(Role.STUDENT, email="Student@Example.com")
        assert store.count(Collection.USERS) == before

    def test_duplicate_explicit_id_rejected(self, store, make_content):
        make_content(id="c-1")
        with pytest.raises(DuplicateKey):
            make_content(id="c-1", title="Other")

    def test_unknown_field_rejected(self, store):
        with pytest.raises(InvalidField):
            store.create(Collection.PLANS, {"name": "X", "type": "OVERALL", "price": 1, "colour": "red"}, actor=SYSTEM)

    def test_unknown_class_grade_rejected(self, make_content):
        with pytest.raises(InvalidField):
            make_content(class_grade="3")

    def test_student_cannot_create_content(self, store, student, make_content):
        before = store.count(Collection.CONTENT)
        with pytest.raises(Unauthorized):
            make_content(actor=student)
        assert store.count(Collection.CONTENT) == before

    def test_teacher_uploads_content_but_not_plans(self, store, teacher, make_content):
        item = make_content(actor=teacher, uploaded_by=teacher.id)
        assert item.uploaded_by == teacher.id
        with pytest.raises(Unauthorized):
            store.create(Collection.PLANS, {"name": "X", "type": "OVERALL", "price": 1}, actor=teacher)

    def test_blocked_admin_cannot_write(self, store, make_user):
        make_user(Role.ADMIN)
        blocked = make_user(Role.ADMIN, is_blocked=True)
        with pytest.raises(Unauthorized):
            store.create(Collection.PLANS, {"name": "X", "type": "OVERALL", "price": 1}, actor=blocked)

    def test_missing_actor_is_refused(self, store):
        before = store.count(Collection.USERS)
        with pytest.raises(Unauthorized):
            store.create(
                Collection.USERS,
                {"email": "root@example.com", "password_hash": "x" * 20, "name": "Root", "role": "ADMIN"},
                actor=None,
            )
        assert store.count(Collection.USERS) == before

    def test_missing_actor_cannot_update_or_delete(self, store, student):
        with pytest.raises(Unauthorized):
            store.update(Collection.USERS, student.id, {"name": "Changed"}, actor=None)
        with pytest.raises(Unauthorized):
            store.delete(Collection.USERS, student.id, actor=None)
        assert store.get_by_id(Collection.USERS, student.id).name == "Asha"

    def test_new_student_cannot_start_paid(self, store, admin):
        before = store.count(Collection.USERS)
        with pytest.raises(InvalidField):
            store.create(
                Collection.USERS,
                {"email": "paid@example.com", "password_hash": "x" * 20, "name": "P", "class_grade": "10", "is_paid": True},
                actor=admin,
            )
        assert store.count(Collection.USERS) == before

    def test_new_student_cannot_carry_expiry_or_payment(self, store, admin):
        base = {"email": "e@example.com", "password_hash": "x" * 20, "name": "E", "class_grade": "10"}
        for extra in ({"subscription_expiry": "2030-01-01T00:00:00+00:00"}, {"payment_id": "p-1"}):
            with pytest.raises(InvalidField):
                store.create(Collection.USERS, {**base, **extra}, actor=admin)

    def test_payment_cannot_be_created_as_success(self, store, admin, student):
        with pytest.raises(InvalidField):
            store.create(
                Collection.PAYMENTS,
                {"user_id": student.id, "amount": 500, "status": "SUCCESS", "subscription_type": "CLASS_WISE"},
                actor=admin,
            )
        assert store.count(Collection.PAYMENTS) == 0

    def test_audit_log_not_writable_through_store(self, store, admin):
        with pytest.raises(Unauthorized):
            store.create(Collection.AUDIT_LOG, {"action": "USER_CREATE"}, actor=admin)

    def test_staff_rows_carry_no_student_fields(self, make_user):
        teacher = make_user(Role.TEACHER, class_grade="10", is_paid=False)
        assert teacher.class_grade is None
        assert teacher.is_paid is None

    def test_audit_failure_does_not_undo_create(self, store, make_content):
        with patch(
            "portal.services.store.service.AuditService.record",
            side_effect=OperationalError("INSERT", {}, Exception("disk full")),
        ):
            item = make_content(title="Survives")
        assert store.get_by_id(Collection.CONTENT, item.id).title == "Survives"


class TestUpdate:
    def test_update_missing_id_writes_no_audit(self, db, store, admin):
        before = len(_actions(db))
        with pytest.raises(NotFound):
            store.update(Collection.CONTENT, "missing", {"title": "x"}, actor=admin)
        assert len(_actions(db)) == before

    def test_update_audits_old_and_new_values(self, db, store, admin, make_content):
        item = make_content(title="Old")
        store.update(Collection.CONTENT, item.id, {"title": "New"}, actor=admin)
        entry = db.query(AuditLog).order_by(AuditLog.seq.desc()).first()
        assert entry.action == AuditAction.CONTENT_UPDATE.value
        assert entry.actor_id == admin.id
        assert "title: Old -> New" in entry.details

    def test_counters_are_not_updatable(self, store, admin, make_content):
        item = make_content()
        with pytest.raises(InvalidField):
            store.update(Collection.CONTENT, item.id, {"views": 100}, actor=admin)

    def test_required_field_cannot_be_cleared(self, store, admin, make_content):
        item = make_content()
        with pytest.raises(InvalidField):
            store.update(Collection.CONTENT, item.id, {"title": None}, actor=admin)

    def test_is_paid_cannot_be_granted_by_edit(self, store, admin, student):
        with pytest.raises(InvalidField):
            store.update(Collection.USERS, student.id, {"is_paid": True}, actor=admin)

    def test_email_change_to_taken_address_rejected(self, store, admin, student, make_user):
        other = make_user()
        with pytest.raises(DuplicateKey):
            store.update(Collection.USERS, other.id, {"email": "student@example.com"}, actor=admin)

    def test_password_hash_never_echoed_into_audit(self, db, store, admin, student):
        store.update(Collection.USERS, student.id, {"password_hash": "x" * 20}, actor=admin)
        entry = db.query(AuditLog).order_by(AuditLog.seq.desc()).first()
        assert "password_hash" not in entry.details

    def test_block_and_unblock_audited(self, db, store, admin, student):
        store.update(Collection.USERS, student.id, {"is_blocked": True}, actor=admin)
        store.update(Collection.USERS, student.id, {"is_blocked": False}, actor=admin)
        assert _actions(db)[-2:] == [AuditAction.USER_BLOCK.value, AuditAction.USER_UNBLOCK.value]


class TestRoles:
    def test_role_change_requires_admin_actor(self, store, teacher, student):
        with pytest.raises(Unauthorized):
            store.update(Collection.USERS, student.id, {"role": "TEACHER"}, actor=teacher)

    def test_system_actor_cannot_change_roles(self, store, student):
        with pytest.raises(Unauthorized):
            store.update(Collection.USERS, student.id, {"role": "ADMIN"}, actor=SYSTEM)

    def test_promotion_clears_student_fields(self, db, store, admin, student):
        promoted = store.update(Collection.USERS, student.id, {"role": "TEACHER"}, actor=admin)
        assert promoted.role == Role.TEACHER.value
        assert promoted.class_grade is None
        assert promoted.subscription_type is None
        assert _actions(db)[-1] == AuditAction.USER_ROLE_CHANGE.value

    def test_last_admin_cannot_demote_self(self, store, admin):
        with pytest.raises(Unauthorized):
            store.update(Collection.USERS, admin.id, {"role": "TEACHER"}, actor=admin)
        assert store.get_by_id(Collection.USERS, admin.id).role == Role.ADMIN.value

    def test_admin_demoted_when_another_remains(self, store, admin, make_user):
        second = make_user(Role.ADMIN)
        demoted = store.update(Collection.USERS, second.id, {"role": "TEACHER"}, actor=admin)
        assert demoted.role == Role.TEACHER.value

    def test_last_admin_cannot_be_blocked_or_deleted(self, store, admin):
        with pytest.raises(Unauthorized):
            store.update(Collection.USERS, admin.id, {"is_blocked": True}, actor=admin)
        with pytest.raises(Unauthorized):
            store.delete(Collection.USERS, admin.id, actor=admin)

    @patch("portal.access.policy.get_protect_last_admin", return_value=False)
    def test_last_admin_guard_can_be_disabled(self, _, store, admin):
        demoted = store.update(Collection.USERS, admin.id, {"role": "TEACHER"}, actor=admin)
        assert demoted.role == Role.TEACHER.value


class TestDelete:
    def test_delete_is_idempotent(self, db, store, admin, make_content):
        item = make_content()
        assert store.delete(Collection.CONTENT, item.id, actor=admin) is True
        actions = len(_actions(db))
        assert store.delete(Collection.CONTENT, item.id, actor=admin) is False
        assert len(_actions(db)) == actions
        assert store.get_by_id(Collection.CONTENT, item.id) is None

    def test_settings_cannot_be_deleted(self, store, admin):
        with pytest.raises(InvalidOperation):
            store.delete(Collection.SETTINGS, "default", actor=admin)

    def test_student_cannot_delete(self, store, student, make_content):
        item = make_content()
        with pytest.raises(Unauthorized):
            store.delete(Collection.CONTENT, item.id, actor=student)
        assert store.get_by_id(Collection.CONTENT, item.id) is not None


class TestCounters:
    def test_view_and_download_counters(self, store, make_content):
        item = make_content()
        store.record_view(item.id)
        store.record_view(item.id)
        store.record_download(item.id)
        fresh = store.get_by_id(Collection.CONTENT, item.id)
        assert (fresh.views, fresh.downloads) == (2, 1)

    def test_counter_on_missing_content(self, store):
        with pytest.raises(NotFound):
            store.record_view("missing")


class TestVisibilityChange:
    def test_hiding_item_removes_it_for_students_only(self, store, admin, student, make_content):
        item = make_content(title="Algebra")
        assert [c.id for c in visible_content(student, store.get_all(Collection.CONTENT))] == [item.id]

        store.update(Collection.CONTENT, item.id, {"is_visible": False}, actor=admin)

        catalog = store.get_all(Collection.CONTENT)
        assert visible_content(student, catalog) == []
        assert [c.id for c in visible_content(admin, catalog)] == [item.id]

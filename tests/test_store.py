import pytest
from datetime import timedelta
from uuid import uuid4

from models.recipient import RecipientRecord
from store.recipient_store import RecipientStore, StoreError

from conftest import NOW


def test_upsert_replaces_existing_id(store):
    record_id = uuid4()
    store.upsert_recipient(RecipientRecord(id=record_id, email_address="a@x.com", expiry_date=NOW + timedelta(days=1)))
    store.upsert_recipient(RecipientRecord(id=record_id, email_address="b@x.com", expiry_date=NOW + timedelta(days=2)))

    active = store.list_active(NOW)
    assert len(active) == 1
    assert active[0].id == record_id
    assert active[0].email_address == "b@x.com"
    assert active[0].expiry_date == NOW + timedelta(days=2)


def test_upsert_never_clears_soft_delete(store, make_record):
    record = make_record(is_deleted=True)
    store.upsert_recipient(record)
    store.upsert_recipient(record.model_copy(update={"is_deleted": False}))

    assert store.get_recipient(record.id).is_deleted is True


def test_list_active_excludes_expired_and_deleted(store, make_record):
    active = make_record("active@x.com")
    expired = make_record("expired@x.com", expires_in=timedelta(days=-1))
    boundary = make_record("boundary@x.com", expires_in=timedelta(0))
    deleted = make_record("deleted@x.com", is_deleted=True)
    for record in (active, expired, boundary, deleted):
        store.upsert_recipient(record)

    result = store.list_active(NOW)

    assert [r.email_address for r in result] == ["active@x.com"]


def test_expired_record_is_soft_deleted(store, make_record):
    yesterday = make_record("late@x.com", expires_in=timedelta(days=-1))
    store.upsert_recipient(yesterday)
    assert store.list_active(NOW) == []

    changed = store.soft_delete_expired(NOW)

    assert changed == 1
    assert store.get_recipient(yesterday.id).is_deleted is True


def test_soft_delete_is_idempotent(store, make_record):
    store.upsert_recipient(make_record("one@x.com", expires_in=timedelta(days=-2)))
    store.upsert_recipient(make_record("two@x.com", expires_in=timedelta(days=-1)))
    keep = make_record("keep@x.com")
    store.upsert_recipient(keep)

    assert store.soft_delete_expired(NOW) == 2
    assert store.soft_delete_expired(NOW) == 0
    assert store.get_recipient(keep.id).is_deleted is False


def test_hard_delete_uses_threshold_not_flag(store, make_record):
    old = make_record("old@x.com", expires_in=timedelta(days=-10))
    old_deleted = make_record("old-deleted@x.com", expires_in=timedelta(days=-10), is_deleted=True)
    recent = make_record("recent@x.com", expires_in=timedelta(days=-1), is_deleted=True)
    for record in (old, old_deleted, recent):
        store.upsert_recipient(record)

    removed = store.hard_delete_older_than(NOW - timedelta(days=5))

    assert removed == 2
    assert store.get_recipient(old.id) is None
    assert store.get_recipient(old_deleted.id) is None
    assert store.get_recipient(recent.id) is not None


def test_find_active_by_email(store, make_record):
    record = make_record("Someone@X.com ")
    store.upsert_recipient(record)

    assert store.find_active_by_email("someone@x.com", NOW).id == record.id
    assert store.find_active_by_email("someone@x.com", NOW + timedelta(days=10)) is None


def test_store_errors_are_wrapped(tmp_path):
    store = RecipientStore(str(tmp_path / "missing" / "gms.db"))
    with pytest.raises(StoreError):
        store.list_active(NOW)


def test_query_without_table_raises_store_error(tmp_path):
    store = RecipientStore(str(tmp_path / "empty.db"))
    with pytest.raises(StoreError):
        store.soft_delete_expired(NOW)

"""Product Store against SQLite: CRUD, transactions and the change feed."""

from dataclasses import replace

import pytest

from minimarket.services.product_store import ChangeKind
from minimarket.validation import RemoteStoreError


@pytest.fixture
def store(runtime):
    return runtime.store


@pytest.fixture
def feed(store):
    events = []
    unsubscribe = store.subscribe(events.append)
    yield events
    unsubscribe()


def test_insert_and_list_newest_first(store, make_product, clock):
    first = store.insert(make_product(created_at=clock()))
    second = store.insert(make_product(created_at=clock.advance(minutes=1)))

    assert [p.id for p in store.list()] == [second.id, first.id]
    assert store.get(first.id) == first


def test_insert_publishes_after_commit(store, feed, make_product):
    product = store.insert(make_product())

    assert [(e.event, e.row["id"]) for e in feed] == [(ChangeKind.INSERT, product.id)]
    assert feed[0].row["code"] == product.code


def test_update_many_is_all_or_nothing(store, feed, make_product):
    a = store.insert(make_product(current_stock=5))
    feed.clear()

    ghost = make_product(id="missing")
    with pytest.raises(RemoteStoreError):
        store.update_many([a.with_stock(1, a.updated_at), ghost])

    assert store.get(a.id).current_stock == 5
    assert feed == []


def test_update_publishes_update(store, feed, make_product):
    a = store.insert(make_product(current_stock=5))
    feed.clear()

    store.update(replace(a, current_stock=4))

    assert [(e.event, e.row["current_stock"]) for e in feed] == [(ChangeKind.UPDATE, 4)]


def test_delete(store, feed, make_product):
    a = store.insert(make_product())
    feed.clear()

    store.delete(a.id)

    assert store.get(a.id) is None
    assert [e.event for e in feed] == [ChangeKind.DELETE]
    with pytest.raises(RemoteStoreError):
        store.delete(a.id)


def test_duplicate_code_is_a_remote_error(store, make_product):
    store.insert(make_product(code="DUP"))
    with pytest.raises(RemoteStoreError):
        store.insert(make_product(code="DUP"))
    assert len(store.list()) == 1


def test_feed_keeps_runtime_cache_in_sync(runtime, store, make_product):
    product = store.insert(make_product())
    assert runtime.cache.get(product.id) == product

    store.delete(product.id)
    assert product.id not in runtime.cache

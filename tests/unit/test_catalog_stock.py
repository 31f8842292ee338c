import pytest

from boutique.catalog import service as catalog_service
from boutique.utils.errors import InsufficientStock, ProductUnavailable, StockContention


def test_reserve_stock_decrements_each_product(store):
    store.add_product("A", price=10, stock=5)
    store.add_product("B", price=20, stock=2)

    reserved = catalog_service.reserve_stock({"A": 3, "B": 2})

    assert reserved == {"A": 3, "B": 2}
    assert store.products["A"]["stock"] == 2
    assert store.products["B"]["stock"] == 0

def test_partial_failure_releases_previous_reservations(store):
    store.add_product("A", price=10, stock=5)
    store.add_product("B", price=20, stock=1)

    with pytest.raises(InsufficientStock):
        catalog_service.reserve_stock({"A": 3, "B": 2})

    assert store.products["A"]["stock"] == 5
    assert store.products["B"]["stock"] == 1

def test_reserve_inactive_product(store):
    store.add_product("A", price=10, stock=5, is_active=False)
    with pytest.raises(ProductUnavailable):
        catalog_service.reserve_product("A", 1)

def test_cas_retries_when_stock_moves(store, monkeypatch):
    store.add_product("A", price=10, stock=5)
    original = store.compare_and_set_stock
    calls = {"n": 0}

    def flaky_cas(product_id, expected, new_value):
        calls["n"] += 1
        if calls["n"] == 1:
            # Une autre commande prend une unité entre la lecture et l'écriture
            store.products["A"]["stock"] -= 1
            return False
        return original(product_id, expected, new_value)

    monkeypatch.setattr("boutique.catalog.repository.compare_and_set_stock", flaky_cas)

    catalog_service.reserve_product("A", 2)

    assert calls["n"] == 2
    assert store.products["A"]["stock"] == 2

def test_cas_gives_up_after_max_retries(store, monkeypatch):
    store.add_product("A", price=10, stock=5)
    monkeypatch.setattr("boutique.catalog.repository.compare_and_set_stock", lambda *a: False)

    with pytest.raises(StockContention) as exc:
        catalog_service.reserve_product("A", 1)
    assert exc.value.retryable is True
    assert store.products["A"]["stock"] == 5

def test_two_checkouts_cannot_take_the_last_unit(store):
    store.add_product("A", price=10, stock=1)

    catalog_service.reserve_stock({"A": 1})
    with pytest.raises(InsufficientStock):
        catalog_service.reserve_stock({"A": 1})
    assert store.products["A"]["stock"] == 0

def test_release_stock_restores_units(store):
    store.add_product("A", price=10, stock=0)
    catalog_service.release_stock({"A": 2})
    assert store.products["A"]["stock"] == 2

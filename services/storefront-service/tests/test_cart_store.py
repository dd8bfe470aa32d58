import json
import random

import pytest

from services.cart_service import (
    AddItem,
    CartItem,
    CartRegistry,
    CartStore,
    ClearCart,
    RedisCartSnapshotStore,
    RemoveItem,
    ToggleAll,
    ToggleItem,
    UpdateQuantity,
    cart_reducer,
    clamp_quantity
)


def product(product_id, price=10.0, stock_quantity=10):
    return CartItem(id=product_id, name=f"Produto {product_id}", price=price, stock_quantity=stock_quantity)


def expected_totals(items):
    total = sum(item.price * item.quantity for item in items)
    selected_total = sum(item.price * item.quantity for item in items if item.selected)
    return total, selected_total


def test_add_new_item_starts_unselected_with_quantity_one():
    store = CartStore()
    state = store.dispatch(AddItem(product("a", price=25.0)))

    assert len(state.items) == 1
    assert state.items[0].quantity == 1
    assert state.items[0].selected is False
    assert state.total == 25.0
    assert state.selected_total == 0


def test_add_existing_item_increments_quantity_without_duplicate():
    store = CartStore()
    store.dispatch(AddItem(product("a")))
    store.dispatch(ToggleItem("a"))
    state = store.dispatch(AddItem(product("a")))

    assert len(state.items) == 1
    assert state.items[0].quantity == 2
    assert state.items[0].selected is True


def test_added_payload_quantity_and_selection_are_ignored():
    store = CartStore()
    state = store.dispatch(AddItem(CartItem(id="a", name="A", price=1.0, quantity=7, selected=True)))

    assert state.items[0].quantity == 1
    assert state.items[0].selected is False


def test_remove_drops_item_by_id():
    store = CartStore()
    store.dispatch(AddItem(product("a")))
    store.dispatch(AddItem(product("b")))
    state = store.dispatch(RemoveItem("a"))

    assert [item.id for item in state.items] == ["b"]


def test_store_accepts_any_positive_quantity():
    store = CartStore()
    store.dispatch(AddItem(product("a", stock_quantity=3)))
    state = store.dispatch(UpdateQuantity("a", 50))

    assert state.items[0].quantity == 50


@pytest.mark.parametrize("quantity", [0, -1, 1.5])
def test_store_rejects_non_positive_or_fractional_quantity(quantity):
    store = CartStore()
    store.dispatch(AddItem(product("a")))

    with pytest.raises(ValueError):
        store.dispatch(UpdateQuantity("a", quantity))
    assert store.state.items[0].quantity == 1


def test_update_unknown_item_is_noop():
    store = CartStore()
    store.dispatch(AddItem(product("a")))
    state = store.dispatch(UpdateQuantity("missing", 3))

    assert state.items[0].quantity == 1


def test_toggle_all_sets_selection_uniformly_and_keeps_quantities():
    store = CartStore()
    store.dispatch(AddItem(product("a", price=10.0)))
    store.dispatch(AddItem(product("b", price=5.0)))
    store.dispatch(UpdateQuantity("b", 3))
    store.dispatch(ToggleItem("a"))

    state = store.dispatch(ToggleAll(True))
    assert all(item.selected for item in state.items)
    assert [item.quantity for item in state.items] == [1, 3]
    assert state.selected_total == 25.0

    state = store.dispatch(ToggleAll(False))
    assert not any(item.selected for item in state.items)
    assert [item.quantity for item in state.items] == [1, 3]
    assert state.selected_items == ()
    assert state.selected_total == 0


def test_clear_empties_cart():
    store = CartStore()
    store.dispatch(AddItem(product("a")))
    state = store.dispatch(ClearCart())

    assert state.items == ()
    assert state.total == 0


def test_totals_follow_random_operation_sequences():
    rng = random.Random(1234)
    catalog = [product(str(i), price=round(rng.uniform(1, 200), 2)) for i in range(5)]
    store = CartStore()

    for _ in range(300):
        choice = rng.random()
        target = rng.choice(catalog)
        if choice < 0.35:
            store.dispatch(AddItem(target))
        elif choice < 0.5:
            store.dispatch(RemoveItem(target.id))
        elif choice < 0.75:
            store.dispatch(UpdateQuantity(target.id, rng.randint(1, 9)))
        elif choice < 0.95:
            store.dispatch(ToggleItem(target.id))
        else:
            store.dispatch(ToggleAll(rng.random() < 0.5))

        state = store.state
        total, selected_total = expected_totals(state.items)
        assert state.total == pytest.approx(total)
        assert state.selected_total == pytest.approx(selected_total)
        assert state.selected_items == tuple(item for item in state.items if item.selected)
        assert len({item.id for item in state.items}) == len(state.items)


def test_reducer_does_not_mutate_input():
    items = [product("a")]
    cart_reducer(items, AddItem(product("b")))

    assert [item.id for item in items] == ["a"]


def test_subscribers_receive_each_state_until_unsubscribed():
    store = CartStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(AddItem(product("a")))
    store.dispatch(AddItem(product("a")))
    unsubscribe()
    store.dispatch(ClearCart())

    assert [state.items[0].quantity for state in seen] == [1, 2]


def test_clamp_quantity():
    assert clamp_quantity(0, 5) == 1
    assert clamp_quantity(3, 5) == 3
    assert clamp_quantity(9, 5) == 5


def test_registry_saves_snapshot_on_every_dispatch(snapshots, cart_registry):
    store = cart_registry.get("user-1")

    store.dispatch(AddItem(product("a", price=12.5)))
    store.dispatch(ToggleItem("a"))

    saved = json.loads(snapshots.data["cart:user-1"])
    assert saved["items"][0]["id"] == "a"
    assert saved["items"][0]["quantity"] == 1
    assert saved["items"][0]["selected"] is True


def test_registry_returns_same_store_per_user(cart_registry):
    assert cart_registry.get("user-1") is cart_registry.get("user-1")
    assert cart_registry.get("user-1") is not cart_registry.get("user-2")


def test_restore_keeps_quantities_but_resets_selection(snapshots):
    first_process = CartRegistry(RedisCartSnapshotStore(snapshots))
    store = first_process.get("user-1")
    store.dispatch(AddItem(product("a", price=10.0)))
    store.dispatch(AddItem(product("a", price=10.0)))
    store.dispatch(AddItem(product("b", price=3.0)))
    store.dispatch(ToggleAll(True))

    restarted = CartRegistry(RedisCartSnapshotStore(snapshots))
    state = restarted.get("user-1").state

    assert [(item.id, item.quantity) for item in state.items] == [("a", 2), ("b", 1)]
    assert all(item.selected is False for item in state.items)
    assert state.total == 23.0
    assert state.selected_total == 0


def test_unreadable_snapshot_starts_empty_cart(snapshots, cart_registry):
    snapshots.data["cart:user-1"] = "not json"

    assert cart_registry.get("user-1").state.items == ()


def test_registry_drops_least_recently_used_cart(snapshots):
    registry = CartRegistry(RedisCartSnapshotStore(snapshots), max_carts=2)
    first = registry.get("user-1")
    first.dispatch(AddItem(product("a")))
    second = registry.get("user-2")
    second.dispatch(AddItem(product("b")))
    second.dispatch(AddItem(product("b")))

    assert registry.get("user-1") is first
    registry.get("user-3")

    assert len(registry) == 2
    assert registry.get("user-1") is first
    rebuilt = registry.get("user-2")
    assert rebuilt is not second
    assert [(item.id, item.quantity) for item in rebuilt.state.items] == [("b", 2)]

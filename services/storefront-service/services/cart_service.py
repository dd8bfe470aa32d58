"""Shopping cart store.

The cart is an in-memory list of items per shopper, changed only through
``CartStore.dispatch``. Every dispatch recomputes the derived views
(selected items and totals) and notifies subscribers; ``CartRegistry``
subscribes a saver that mirrors the item list to a Redis snapshot.
"""
import json
import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field, fields, replace
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import redis

from config import CART_CACHE_SIZE, CART_KEY_PREFIX
from monitoring import cart_mutations_counter, cart_restores_counter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItem:
    """A product in the cart, with the shopper's quantity and selection."""
    id: str
    name: str
    price: float
    images: List[str] = field(default_factory=list)
    status: str = "published"
    stock_quantity: int = 0
    description: Optional[str] = None
    quantity: int = 1
    selected: bool = False

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_product(cls, product: Any) -> "CartItem":
        """Build a cart entry from a ``models.Product`` row."""
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            images=list(product.images or []),
            status=product.status,
            stock_quantity=product.stock_quantity,
            description=product.description,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# Actions

@dataclass(frozen=True)
class AddItem:
    product: CartItem
    name = "add_item"


@dataclass(frozen=True)
class RemoveItem:
    product_id: str
    name = "remove_item"


@dataclass(frozen=True)
class UpdateQuantity:
    product_id: str
    quantity: int
    name = "update_quantity"


@dataclass(frozen=True)
class ToggleItem:
    product_id: str
    name = "toggle_item"


@dataclass(frozen=True)
class ToggleAll:
    selected: bool
    name = "toggle_all"


@dataclass(frozen=True)
class ClearCart:
    name = "clear_cart"


CartAction = Union[AddItem, RemoveItem, UpdateQuantity, ToggleItem, ToggleAll, ClearCart]


def cart_reducer(items: List[CartItem], action: CartAction) -> List[CartItem]:
    """
    Apply an action to the item list.

    Returns a new list; the input is left untouched. Unknown product ids are
    a no-op for remove/update/toggle.

    Raises:
        ValueError: If a quantity update is not a positive integer
    """
    if isinstance(action, AddItem):
        if any(item.id == action.product.id for item in items):
            return [
                replace(item, quantity=item.quantity + 1) if item.id == action.product.id else item
                for item in items
            ]
        return items + [replace(action.product, quantity=1, selected=False)]

    if isinstance(action, RemoveItem):
        return [item for item in items if item.id != action.product_id]

    if isinstance(action, UpdateQuantity):
        if isinstance(action.quantity, bool) or not isinstance(action.quantity, int) or action.quantity < 1:
            raise ValueError("Quantity must be a positive integer")
        return [
            replace(item, quantity=action.quantity) if item.id == action.product_id else item
            for item in items
        ]

    if isinstance(action, ToggleItem):
        return [
            replace(item, selected=not item.selected) if item.id == action.product_id else item
            for item in items
        ]

    if isinstance(action, ToggleAll):
        return [replace(item, selected=action.selected) for item in items]

    if isinstance(action, ClearCart):
        return []

    return items


@dataclass(frozen=True)
class CartState:
    """Cart items plus the views derived from them."""
    items: Tuple[CartItem, ...] = ()
    selected_items: Tuple[CartItem, ...] = ()
    total: float = 0.0
    selected_total: float = 0.0

    @classmethod
    def from_items(cls, items: List[CartItem]) -> "CartState":
        selected = tuple(item for item in items if item.selected)
        return cls(
            items=tuple(items),
            selected_items=selected,
            total=sum(item.line_total for item in items),
            selected_total=sum(item.line_total for item in selected),
        )


CartListener = Callable[[CartState], None]


class CartStore:
    """Single shopper's cart with a dispatch/subscribe interface."""

    def __init__(self):
        self._state = CartState()
        self._listeners: List[CartListener] = []

    @property
    def state(self) -> CartState:
        return self._state

    def get(self, product_id: str) -> Optional[CartItem]:
        for item in self._state.items:
            if item.id == product_id:
                return item
        return None

    def dispatch(self, action: CartAction) -> CartState:
        """
        Apply an action, recompute derived views and notify subscribers.

        Raises:
            ValueError: If the reducer rejects the action
        """
        items = cart_reducer(list(self._state.items), action)
        self._state = CartState.from_items(items)
        cart_mutations_counter.add(1, {"action": action.name})

        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


def restore_snapshot(store: CartStore, saved_items: List[CartItem]) -> None:
    """
    Replay saved items into a store.

    Each item is re-added and its quantity re-applied. The saved selection
    flag is not replayed, so every restored item comes back unselected.
    """
    for item in saved_items:
        store.dispatch(AddItem(item))
        if item.quantity > 1:
            store.dispatch(UpdateQuantity(item.id, item.quantity))


def clamp_quantity(quantity: int, stock_quantity: int) -> int:
    """Clamp a requested quantity to ``[1, stock_quantity]``."""
    return max(1, min(quantity, stock_quantity))


class RedisCartSnapshotStore:
    """Persists each shopper's cart as one JSON value ``{"items": [...]}``."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = CART_KEY_PREFIX):
        """
        Initialize snapshot store.

        Args:
            redis_client: Redis client (string responses)
            key_prefix: Prefix for the per-user key
        """
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    def load(self, user_id: str) -> List[CartItem]:
        """Read a saved cart; an unreadable snapshot yields an empty cart."""
        try:
            raw = self.redis_client.get(self.key(user_id))
        except redis.RedisError as e:
            logger.error("Failed to load cart snapshot", extra={
                "user_id": user_id,
                "error": str(e)
            })
            return []

        if not raw:
            return []

        try:
            return [CartItem.from_dict(data) for data in json.loads(raw)["items"]]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding unreadable cart snapshot", extra={
                "user_id": user_id,
                "error": str(e)
            })
            return []

    def save(self, user_id: str, state: CartState) -> None:
        """Write the cart; a Redis failure is logged and the in-memory cart stays authoritative."""
        payload = {"items": [asdict(item) for item in state.items]}
        try:
            self.redis_client.set(self.key(user_id), json.dumps(payload))
        except redis.RedisError as e:
            logger.error("Failed to save cart snapshot", extra={
                "user_id": user_id,
                "item_count": len(state.items),
                "error": str(e)
            })


class CartRegistry:
    """
    Process-wide map of shopper id to cart store.

    The first access for a shopper restores the saved snapshot; afterwards
    the in-memory store is authoritative and every dispatch is saved. At most
    ``max_carts`` stores are kept; the least recently used one is dropped and
    rebuilt from its snapshot on the next access.

    Carts are held per process, so the service runs as a single worker.
    """

    def __init__(self, snapshot_store: RedisCartSnapshotStore, max_carts: int = CART_CACHE_SIZE):
        self.snapshot_store = snapshot_store
        self.max_carts = max_carts
        self._stores: "OrderedDict[str, CartStore]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._stores)

    def get(self, user_id: str) -> CartStore:
        store = self._stores.get(user_id)
        if store is not None:
            self._stores.move_to_end(user_id)
            return store

        store = CartStore()
        saved_items = self.snapshot_store.load(user_id)
        if saved_items:
            restore_snapshot(store, saved_items)
            cart_restores_counter.add(1)
            logger.info("Restored cart from snapshot", extra={
                "user_id": user_id,
                "item_count": len(saved_items)
            })

        store.subscribe(partial(self.snapshot_store.save, user_id))
        self._stores[user_id] = store
        while len(self._stores) > self.max_carts:
            evicted, _ = self._stores.popitem(last=False)
            logger.debug("Evicted cart from memory", extra={"user_id": evicted})
        return store

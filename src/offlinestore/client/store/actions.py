"""Action creators for the items domain.

Each creator returns an Action whose offline metadata describes the remote
call realizing it and the follow-up actions the reconciler dispatches.
"""

from __future__ import annotations

import secrets

from offlinestore.client.store.types import (
    Action,
    ActionKind,
    DomainState,
    EffectRequest,
    Item,
    OfflineDescriptor,
)

INCREASE_STEP = 10
DEFAULT_ITEM_AMOUNT = 1

INCREASE_AMOUNT_URL = "/api/increase-amount"
ADD_ITEM_URL = "/api/add-item"


def make_id() -> str:
    """Generate a short random item identifier."""
    return secrets.token_hex(2)


def increase_amount(item_id: str) -> Action:
    """Increase an item's amount by INCREASE_STEP.

    There is no commit action: the optimistic increase is already the
    confirmed state. A permanent failure dispatches the exact inverse.
    """
    return Action(
        kind=ActionKind.INCREASE_AMOUNT,
        payload={"item_id": item_id},
        offline=OfflineDescriptor(
            effect=EffectRequest(
                url=INCREASE_AMOUNT_URL,
                method="POST",
                json={"itemId": item_id},
            ),
            rollback=Action(
                kind=ActionKind.INCREASE_AMOUNT_ROLLBACK,
                payload={"item_id": item_id},
            ),
        ),
    )


def add_item(item_id: str | None = None, amount: int = DEFAULT_ITEM_AMOUNT) -> Action:
    """Add a new item, or re-add an existing one to retry it.

    Args:
        item_id: Identifier of the item (generated when omitted)
        amount: Initial amount

    Returns:
        An ADD_ITEM action with commit and rollback follow-ups
    """
    if item_id is None:
        item_id = make_id()
    return Action(
        kind=ActionKind.ADD_ITEM,
        payload={"item_id": item_id, "amount": amount},
        offline=OfflineDescriptor(
            effect=EffectRequest(
                url=ADD_ITEM_URL,
                method="POST",
                json={"itemId": item_id, "amount": amount},
            ),
            commit=Action(kind=ActionKind.ADD_ITEM_COMMIT, payload={"item_id": item_id}),
            rollback=Action(kind=ActionKind.ADD_ITEM_ROLLBACK, payload={"item_id": item_id}),
        ),
    )


def retry_item(state: DomainState, item_id: str) -> Action:
    """Re-issue the add-item intent of a failed item, keeping its amount.

    Raises:
        KeyError: If the item does not exist
    """
    item = state.items[item_id]
    return add_item(item_id=item_id, amount=item.amount)


def initial_state() -> DomainState:
    """Create the starting state: two confirmed items."""
    items: dict[str, Item] = {}
    for amount in (10, 20):
        item_id = make_id()
        while item_id in items:
            item_id = make_id()
        items[item_id] = Item(amount=amount)
    return DomainState(items=items)

"""Pure reducer for the items domain.

The reducer never mutates the previous snapshot: every handled action
produces a new DomainState built with ``dataclasses.replace``. Unknown
action kinds return the previous state object unchanged.

Action mapping:
    | Action                   | Effect on items[item_id]               |
    |--------------------------|----------------------------------------|
    | INCREASE_AMOUNT          | amount += 10                           |
    | INCREASE_AMOUNT_ROLLBACK | amount -= 10                           |
    | ADD_ITEM                 | {amount, pending: True} (overwrites)   |
    | ADD_ITEM_COMMIT          | clear pending and error                |
    | ADD_ITEM_ROLLBACK        | error: True, clear pending, keep amount|

Mutations naming an unknown item are logged and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from offlinestore.client.store.actions import INCREASE_STEP
from offlinestore.client.store.types import Action, ActionKind, DomainState, Item

logger = logging.getLogger(__name__)


def _update_item(
    state: DomainState,
    action: Action,
    update: Callable[[Item], Item],
) -> DomainState:
    item_id = action.payload.get("item_id")
    item = state.get(item_id) if item_id is not None else None
    if item is None:
        logger.warning("Ignoring %s for unknown item %r", action.kind, item_id)
        return state
    return state.with_item(item_id, update(item))


def items_reducer(state: DomainState, action: Action) -> DomainState:
    """Apply an action to the domain state.

    Args:
        state: Previous snapshot (left untouched)
        action: The action to apply

    Returns:
        The next snapshot, or ``state`` itself when nothing changed
    """
    kind = action.kind

    if kind == ActionKind.INCREASE_AMOUNT:
        return _update_item(
            state, action, lambda item: replace(item, amount=item.amount + INCREASE_STEP)
        )

    if kind == ActionKind.INCREASE_AMOUNT_ROLLBACK:
        return _update_item(
            state, action, lambda item: replace(item, amount=item.amount - INCREASE_STEP)
        )

    if kind == ActionKind.ADD_ITEM:
        item_id = action.payload.get("item_id")
        if item_id is None:
            logger.warning("Ignoring %s without item_id", kind)
            return state
        amount = action.payload.get("amount", 0)
        return state.with_item(item_id, Item(amount=amount, pending=True))

    if kind == ActionKind.ADD_ITEM_COMMIT:
        return _update_item(
            state, action, lambda item: replace(item, pending=False, error=False)
        )

    if kind == ActionKind.ADD_ITEM_ROLLBACK:
        # Pending is cleared too: an item is never both pending and failed
        return _update_item(
            state, action, lambda item: replace(item, pending=False, error=True)
        )

    return state

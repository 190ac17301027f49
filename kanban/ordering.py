"""Dense integer ordering of siblings.

Columns are ordered within their board and cards within their column by an
integer ``position``. Moving an entity re-numbers its new sibling set from 0
so that ascending positions match the display order. The set it left is not
compacted; gaps there still sort correctly.
"""
from kanban.extensions import db


def resequence(moved, siblings: list, index: int) -> list:
    """Place ``moved`` at ``index`` among ``siblings``.

    ``siblings`` must exclude ``moved`` and be sorted by ascending position.
    Every sibling is re-numbered with a running counter; ``moved`` takes the
    counter value when the walk reaches ``index``, or the last value when
    ``index`` is past the end. Returns the touched entities in their new
    order.
    """
    index = max(index, 0)
    ordered = []
    position = 0
    for i, sibling in enumerate(siblings):
        if i == index:
            moved.position = position
            ordered.append(moved)
            position += 1
        sibling.position = position
        ordered.append(sibling)
        position += 1

    if index >= len(siblings):
        moved.position = position
        ordered.append(moved)

    return ordered


def move_column(column, index: int) -> list:
    ordered = resequence(column, column.siblings(), index)
    db.session.add_all(ordered)
    db.session.flush()
    return ordered


def move_card(card, index: int) -> list:
    ordered = resequence(card, card.siblings(), index)
    db.session.add_all(ordered)
    db.session.flush()
    return ordered


def move_card_to_column(card, column, index: int) -> list:
    """Re-parent ``card`` into ``column`` and place it at ``index``."""
    siblings = card.siblings(column.id)
    card.column_id = column.id
    card.board_id = column.board_id
    ordered = resequence(card, siblings, index)
    db.session.add_all(ordered)
    db.session.flush()
    return ordered

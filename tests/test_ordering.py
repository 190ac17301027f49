from types import SimpleNamespace

import pytest

from conftest import DB_IDS
from kanban.extensions import db
from kanban.models.card import Card
from kanban.models.column import Column
from kanban.ordering import (
    move_card,
    move_card_to_column,
    move_column,
    resequence
)


def _items(*names):
    return [SimpleNamespace(name=n, position=i) for i, n in enumerate(names)]


def _names(items):
    return [i.name for i in sorted(items, key=lambda i: i.position)]


@pytest.mark.parametrize(
    ('index', 'expected'),
    (
        (0, ['D', 'A', 'B', 'C']),
        (1, ['A', 'D', 'B', 'C']),
        (3, ['A', 'B', 'C', 'D']),
        (10, ['A', 'B', 'C', 'D']),
        (-1, ['D', 'A', 'B', 'C']),
    ),
)
def test_resequence(index, expected):
    a, b, c, d = _items('A', 'B', 'C', 'D')
    ordered = resequence(d, [a, b, c], index)
    assert [i.name for i in ordered] == expected
    assert [i.position for i in ordered] == [0, 1, 2, 3]


def test_resequence_compacts_gaps():
    siblings = [SimpleNamespace(name='A', position=3),
                SimpleNamespace(name='B', position=7)]
    moved = SimpleNamespace(name='X', position=42)
    resequence(moved, siblings, 1)
    assert [(i.name, i.position) for i in (siblings[0], moved, siblings[1])] \
        == [('A', 0), ('X', 1), ('B', 2)]


def test_resequence_without_siblings():
    moved = SimpleNamespace(name='X', position=5)
    assert resequence(moved, [], 3) == [moved]
    assert moved.position == 0


def _column_names(board_id):
    return [(c.name, c.position) for c in db.session.execute(
        db.select(Column).filter_by(board_id=board_id)
        .order_by(Column.position)).scalars()]


def test_move_column(app):
    with app.app_context():
        move_column(Column.get(DB_IDS['done']), 0)
        db.session.commit()
        assert _column_names(DB_IDS['board']) == \
            [('Done', 0), ('To Do', 1), ('Doing', 2)]


def test_move_fourth_column_to_index_one(app):
    with app.app_context():
        review = Column(name='Review', board_id=DB_IDS['board'],
                        position=Column.next_position(DB_IDS['board']))
        db.session.add(review)
        db.session.commit()
        assert review.position == 3

        move_column(review, 1)
        db.session.commit()
        assert [n for n, _ in _column_names(DB_IDS['board'])] == \
            ['To Do', 'Review', 'Doing', 'Done']


def test_move_card_within_column(app):
    with app.app_context():
        move_card(Card.get(DB_IDS['write_tests']), 1)
        db.session.commit()
        assert Card.get(DB_IDS['fix_bug']).position == 0
        assert Card.get(DB_IDS['write_tests']).position == 1


def test_move_card_to_column(app):
    with app.app_context():
        card = Card.get(DB_IDS['write_tests'])
        move_card_to_column(card, Column.get(DB_IDS['doing']), 0)
        db.session.commit()

        assert card.column_id == DB_IDS['doing']
        assert card.board_id == card.column.board_id
        others = [Card.get(DB_IDS['review']), Card.get(DB_IDS['deploy'])]
        assert all(card.position < c.position for c in others)
        # the source column is not compacted
        assert Card.get(DB_IDS['fix_bug']).position == 1

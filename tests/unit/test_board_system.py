from __future__ import annotations

import pytest

from sugoroku.game.board import BoardSystem, CellType
from sugoroku.game.state import SimulationState
from sugoroku.save.schema import default_state


def _board(*, seed: int = 1, level: int = 1, rebirth_count: int = 0) -> BoardSystem:
    state = default_state(board_random_seed=seed)
    state.level = level
    state.rebirth_count = rebirth_count
    return BoardSystem(state=state)


def _find(board: BoardSystem, cell_type: CellType, *, predicate=lambda p, c: True) -> int:
    for p, cell in enumerate(board.board_layout()):
        if cell.type is cell_type and not cell.fixed and predicate(p, cell):
            return p
    raise AssertionError(f"no {cell_type} cell on this board")


def test_layout_depends_only_on_rebirth_and_level() -> None:
    # the RNG seed and dice history do not change the board
    a = _board(seed=1, level=7)
    b = _board(seed=999, level=7)
    assert a.board_layout() == b.board_layout()

    assert _board(level=7).board_layout() != _board(level=8).board_layout()
    assert _board(level=7).board_layout() != _board(level=7, rebirth_count=1).board_layout()


def test_layout_has_every_band() -> None:
    layout = _board(level=3).board_layout()
    assert len(layout) == 100
    kinds = {c.type for c in layout}
    assert {CellType.EMPTY, CellType.CREDIT, CellType.FORWARD, CellType.BACKWARD} <= kinds


def test_fixed_backward_zone() -> None:
    assert not any(c.fixed for c in _board(level=9).board_layout())

    layout = _board(level=30).board_layout()
    fixed = [p for p, c in enumerate(layout) if c.fixed]
    assert fixed == [97, 98, 99]
    assert all(layout[p].type is CellType.BACKWARD for p in fixed)


def test_cell_at_rejects_off_board_positions() -> None:
    board = _board()
    with pytest.raises(ValueError):
        board.cell_at(100)
    with pytest.raises(ValueError):
        board.cell_at(-1)


def test_example_move_of_four_from_start() -> None:
    board = _board()
    move = board.move_player(4)

    assert move.new_position == 4
    assert board.state.position == 4
    assert board.state.stats.total_moves == 4
    assert not move.level_changed


def test_wraparound_advances_level() -> None:
    board = _board(level=3)
    board.state.position = 98

    move = board.move_player(5)
    assert move.new_position == 3
    assert move.new_level == 4
    assert move.levels_completed == 1
    assert board.state.level == 4


def test_negative_move_clamps_at_zero() -> None:
    board = _board()
    board.state.position = 2

    move = board.move_player_direct(-5)
    assert move.new_position == 0
    assert board.state.level == 1
    assert board.state.stats.total_moves == 5


def test_prestige_points_awarded_as_delta() -> None:
    board = _board(level=49)
    board.state.position = 99
    move = board.move_player(1)
    assert move.prestige_earned == 1
    assert board.state.prestige_points.earned == 1

    board = _board(level=50)
    move = board.move_player(10_000)  # 100 levels at once
    assert move.new_level == 150
    assert move.prestige_earned == 3  # points(150) - points(50)
    assert board.state.stats.total_prestige_points == 3


def test_credit_cell_pays_magnitude() -> None:
    board = _board(level=4)
    p = _find(board, CellType.CREDIT)
    cell = board.cell_at(p)
    board.state.position = p

    effect = board.apply_cell_effect()
    assert effect.credits_gained == cell.magnitude
    assert board.state.credits == cell.magnitude
    assert board.state.run_stats.credits_earned == cell.magnitude


def test_credit_multiplier_applies() -> None:
    board = _board(level=4)
    board.state.prestige_upgrades.credit_multiplier.level = 2  # x2.0
    p = _find(board, CellType.CREDIT)

    effect = board.apply_cell_effect(p)
    assert effect.credits_gained == board.cell_at(p).magnitude * 2


def test_forward_cell_moves_once_without_chaining() -> None:
    board = _board(level=4)
    p = _find(board, CellType.FORWARD, predicate=lambda p, c: p + c.magnitude < 100)
    cell = board.cell_at(p)
    board.state.position = p

    effect = board.apply_cell_effect()
    assert effect.follow_up is not None
    assert effect.follow_up.new_position == p + cell.magnitude
    assert board.state.position == p + cell.magnitude
    # the destination is never resolved
    assert board.state.credits == 0


def test_backward_cell_is_clamped_to_position() -> None:
    board = _board(level=4)
    p = _find(board, CellType.BACKWARD)
    cell = board.cell_at(p)
    board.state.position = p

    effect = board.apply_cell_effect()
    assert effect.follow_up is not None
    assert board.state.position == max(0, p - cell.magnitude)


def test_bonus_cells_pay_bonus_multiplier() -> None:
    board = _board(level=4)
    board.state.prestige_upgrades.bonus_chance.level = 100  # 52% of credit cells
    p = _find(board, CellType.CREDIT_BONUS)

    effect = board.apply_cell_effect(p)
    assert effect.credits_gained == board.cell_at(p).magnitude * 20


def test_effect_resolution_is_not_reentrant() -> None:
    board = _board()
    board._resolving = True
    with pytest.raises(RuntimeError):
        board.apply_cell_effect(0)


def test_state_is_shared_by_reference() -> None:
    state: SimulationState = default_state(board_random_seed=1)
    board = BoardSystem(state=state)
    board.move_player(3)
    assert state.position == 3

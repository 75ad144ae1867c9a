import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

SIZE = 4
CELLS = SIZE * SIZE


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# destination cells, visited edge-first, and the offset to their source cell
# (source = destination + offset, or destination - offset when reversed)
SWEEPS: dict[Direction, tuple[tuple[int, ...], int, bool]] = {
    Direction.UP: ((0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11), 4, False),
    Direction.DOWN: ((12, 13, 14, 15, 8, 9, 10, 11, 4, 5, 6, 7), 4, True),
    Direction.LEFT: ((0, 4, 8, 12, 1, 5, 9, 13, 2, 6, 10, 14), 1, False),
    Direction.RIGHT: ((3, 7, 11, 15, 2, 6, 10, 14, 1, 5, 9, 13), 1, True),
}


@dataclass(frozen=True)
class GameConfig:
    two_probability: float = 0.6
    spawn_on_noop: bool = True
    poll_interval: float = 1.0


@dataclass(frozen=True)
class Snapshot:
    cells: tuple[int, ...]
    score: int

    def rows(self) -> list[list[int]]:
        return [list(self.cells[r * SIZE : (r + 1) * SIZE]) for r in range(SIZE)]

    @property
    def max_tile(self) -> int:
        return max(self.cells)


def render_text(snapshot: Snapshot) -> str:
    """Fixed-width grid with the score underneath. Empty cells are blank."""
    lines = ["_" * 21]
    for row in snapshot.rows():
        lines.append("|" + "|".join(f"{v if v else ' ':>4}" for v in row) + "|")
    lines.append("-" * 21)
    lines.append(f"Points: {snapshot.score}")
    return "\n".join(lines) + "\n"


def _is_power_of_two(value: int) -> bool:
    return value >= 2 and value & (value - 1) == 0


class Game:
    """2048 game state"""

    cells: np.ndarray
    score: int
    free_count: int

    def __init__(self, rng=None, seed: int | None = None, config: GameConfig | None = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.config = config if config is not None else GameConfig()
        self.cells = np.zeros(CELLS, dtype=np.uint32)
        self.score = 0

        first = int(self.rng.integers(0, CELLS))
        second = int(self.rng.integers(0, CELLS))
        self.cells[first] = 2
        self.cells[second] = 2
        self.free_count = CELLS - 2 if first != second else CELLS - 1
        logger.debug("new game, tiles at %d and %d", first, second)

    @classmethod
    def from_cells(
        cls, cells, score: int = 0, rng=None, seed: int | None = None, config: GameConfig | None = None
    ) -> "Game":
        """
        Build a game around an explicit board of 16 cells in row-major order.

        Raises ValueError when the board has the wrong length or holds a value
        that is neither zero nor a power of two.
        """
        values = [int(v) for v in np.asarray(cells).flatten()]
        if len(values) != CELLS:
            raise ValueError(f"Expected {CELLS} cells, received {len(values)}")
        for v in values:
            if v != 0 and not _is_power_of_two(v):
                raise ValueError(f"Invalid tile value: {v}")
        if score < 0:
            raise ValueError(f"Invalid score: {score}")

        game = cls.__new__(cls)
        game.rng = rng if rng is not None else np.random.default_rng(seed)
        game.config = config if config is not None else GameConfig()
        game.cells = np.array(values, dtype=np.uint32)
        game.score = score
        game.free_count = values.count(0)
        return game

    def fill_rand_value(self):
        """Place a 2 or a 4 on a uniformly chosen empty cell."""
        assert self.free_count > 0, "no free cell to spawn into"

        target = int(self.rng.integers(0, self.free_count))
        for i in range(CELLS):
            if self.cells[i] != 0:
                continue
            if target == 0:
                value = 2 if self.rng.random() < self.config.two_probability else 4
                self.cells[i] = value
                logger.debug("spawned %d at %d", value, i)
                break
            target -= 1
        self.free_count -= 1

    def _compare_slots(self, dst: int, src: int, merged: set[int]) -> bool:
        # return whether a change has been made
        if self.cells[src] == 0:
            return False

        if self.cells[dst] == 0:
            self.cells[dst] = self.cells[src]
            self.cells[src] = 0
            if src in merged:
                merged.discard(src)
                merged.add(dst)
            return True

        if self.cells[dst] == self.cells[src] and dst not in merged and src not in merged:
            self.cells[dst] *= 2
            self.cells[src] = 0
            self.free_count += 1
            self.score += int(self.cells[dst])
            merged.add(dst)
            logger.debug("merged %d into %d, now %d", src, dst, int(self.cells[dst]))
            return True

        return False

    def _sweep(self, direction: Direction) -> bool:
        order, offset, reverse = SWEEPS[direction]
        merged: set[int] = set()
        changed_any = False
        while True:
            changed = False
            for dst in order:
                src = dst - offset if reverse else dst + offset
                if self._compare_slots(dst, src, merged):
                    changed = True
            if not changed:
                break
            changed_any = True
        return changed_any

    def move(self, direction: Direction) -> bool:
        """
        Play a move in the game. Return whether the game goes on.

        A move into a board with no free cell left is a loss and spawns
        nothing. Otherwise a tile is spawned, also after a move that shifted
        nothing unless the config says otherwise.
        """
        if not isinstance(direction, Direction):
            try:
                direction = Direction(direction)
            except ValueError:
                raise ValueError(f"Invalid direction: {direction!r}") from None

        changed = self._sweep(direction)
        logger.debug("moved %s, changed=%s, free=%d", direction.value, changed, self.free_count)

        if self.is_lost():
            logger.info("game over with %d points", self.score)
            return False
        if changed or self.config.spawn_on_noop:
            self.fill_rand_value()
        return True

    def up(self) -> bool:
        return self.move(Direction.UP)

    def down(self) -> bool:
        return self.move(Direction.DOWN)

    def left(self) -> bool:
        return self.move(Direction.LEFT)

    def right(self) -> bool:
        return self.move(Direction.RIGHT)

    move_up = up
    move_down = down
    move_left = left
    move_right = right

    def is_lost(self) -> bool:
        return self.free_count == 0

    def alive(self) -> bool:
        return not self.is_lost()

    def clone(self) -> "Game":
        g = Game.__new__(Game)
        g.rng = self.rng
        g.config = self.config
        g.cells = self.cells.copy()
        g.score = self.score
        g.free_count = self.free_count
        return g

    def snapshot(self) -> Snapshot:
        return Snapshot(cells=tuple(int(v) for v in self.cells), score=self.score)

    def render_text(self) -> str:
        return render_text(self.snapshot())

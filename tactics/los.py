"""
Line-of-sight resolution between grid tiles.
"""

import math
from enum import Enum

from .map import Coord, Grid


class LineOfSight(Enum):
    CLEAR = "clear"
    BLOCKED = "blocked"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def line_between(a: Coord, b: Coord) -> list[Coord]:
    """
    Tiles on the straight line from a to b, both ends included.

    Points are sampled at equal steps along the segment and snapped to the
    nearest tile. The line is always traced from the lower endpoint so that
    line_between(a, b) and line_between(b, a) cover the same tiles.
    """
    a, b = tuple(a), tuple(b)
    reverse = b < a
    start, end = (b, a) if reverse else (a, b)

    n = max(abs(end[0] - start[0]), abs(end[1] - start[1]))
    if n == 0:
        return [start]

    results = []
    for i in range(n + 1):
        t = i / n
        x = start[0] + (end[0] - start[0]) * t
        y = start[1] + (end[1] - start[1]) * t
        results.append((_round_half_up(x), _round_half_up(y)))

    if reverse:
        results.reverse()
    return results


def intermediate_tiles(a: Coord, b: Coord) -> list[Coord]:
    """Tiles strictly between a and b."""
    return line_between(a, b)[1:-1]


def check_line_of_sight(grid: Grid, a: Coord, b: Coord) -> LineOfSight:
    """BLOCKED if any tile strictly between a and b holds a unit or blocking terrain."""
    grid.tile_at(a)
    grid.tile_at(b)

    for coord in intermediate_tiles(a, b):
        tile = grid.tile_at(coord)
        if tile.is_occupied():
            return LineOfSight.BLOCKED
        if grid.terrain_info[tile.terrain].blocks_los:
            return LineOfSight.BLOCKED

    return LineOfSight.CLEAR


def has_line_of_sight(grid: Grid, a: Coord, b: Coord) -> bool:
    return check_line_of_sight(grid, a, b) is LineOfSight.CLEAR

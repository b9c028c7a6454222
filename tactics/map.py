"""
Square grid map for the skirmish rules engine.

Coordinates are (x, y) pairs with (0, 0) in the top-left corner.
Units step between orthogonal neighbours; distances are Manhattan.
"""

import heapq
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import OutOfBoundsError

Coord = tuple[int, int]


@dataclass(frozen=True)
class TerrainInfo:
    """Terrain type properties loaded from the rules file."""
    id: str
    name: str
    defense: float = 0.0  # 0-1, damage reduction for a unit standing here
    blocks_los: bool = False


@dataclass(frozen=True)
class MovementClass:
    """Cost of entering each terrain for units of this class."""
    name: str
    costs: dict[str, Optional[int]]  # None = impassable

    def cost(self, terrain: str) -> Optional[int]:
        return self.costs.get(terrain)


@dataclass
class Tile:
    """Individual grid tile."""
    x: int
    y: int
    terrain: str
    occupant: Optional[str] = None  # unit id, the roster owns the unit

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)

    def is_occupied(self) -> bool:
        return self.occupant is not None


class Grid:
    """
    Rectangular tile grid.

    Every coordinate in [0, width) x [0, height) has exactly one Tile.
    A tile holds at most one unit.
    """

    DIRECTIONS = [(0, 1), (1, 0), (0, -1), (-1, 0)]

    def __init__(
        self,
        width: int,
        height: int,
        terrain_info: dict[str, TerrainInfo],
        movement_classes: dict[str, MovementClass],
        default_terrain: str = "plains",
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        if default_terrain not in terrain_info:
            raise ValueError(f"Unknown default terrain: {default_terrain!r}")

        self.width = width
        self.height = height
        self.terrain_info = terrain_info
        self.movement_classes = movement_classes
        self.tiles: dict[Coord, Tile] = {}

        for x in range(width):
            for y in range(height):
                self.tiles[(x, y)] = Tile(x=x, y=y, terrain=default_terrain)

    @classmethod
    def from_rules(cls, width: int, height: int, rules, default_terrain: str = "plains") -> "Grid":
        """Build a grid using the terrain and movement tables of a Rules object."""
        return cls(width, height, rules.terrain_info, rules.movement_classes, default_terrain)

    # Tile access
    def in_bounds(self, coord: Coord) -> bool:
        x, y = coord
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, coord: Coord) -> Tile:
        """Get the tile at coord, raising OutOfBoundsError outside the grid."""
        tile = self.tiles.get(tuple(coord))
        if tile is None:
            raise OutOfBoundsError(f"{tuple(coord)} is outside the {self.width}x{self.height} grid")
        return tile

    def terrain_at(self, coord: Coord) -> TerrainInfo:
        return self.terrain_info[self.tile_at(coord).terrain]

    def set_terrain(self, coord: Coord, terrain: str):
        if terrain not in self.terrain_info:
            raise ValueError(f"Unknown terrain: {terrain!r}")
        self.tile_at(coord).terrain = terrain

    # Occupancy
    def is_occupied(self, coord: Coord) -> bool:
        return self.tile_at(coord).is_occupied()

    def occupant_at(self, coord: Coord) -> Optional[str]:
        return self.tile_at(coord).occupant

    def place_unit(self, unit_id: str, coord: Coord):
        """Put a unit on an empty tile."""
        tile = self.tile_at(coord)
        if tile.occupant is not None:
            raise ValueError(f"{tile.coord} is already occupied by {tile.occupant}")
        tile.occupant = unit_id

    def remove_unit(self, coord: Coord) -> Optional[str]:
        """Clear a tile and return the id of the unit that stood there."""
        tile = self.tile_at(coord)
        unit_id, tile.occupant = tile.occupant, None
        return unit_id

    def move_occupant(self, origin: Coord, destination: Coord):
        src = self.tile_at(origin)
        dst = self.tile_at(destination)
        if src.occupant is None:
            raise ValueError(f"No unit at {src.coord}")
        if src is dst:
            return
        if dst.occupant is not None:
            raise ValueError(f"{dst.coord} is already occupied by {dst.occupant}")
        dst.occupant, src.occupant = src.occupant, None

    def units(self) -> dict[Coord, str]:
        """All occupied coordinates mapped to unit ids."""
        return {c: t.occupant for c, t in self.tiles.items() if t.occupant is not None}

    # Geometry
    def neighbors(self, coord: Coord) -> list[Coord]:
        """Orthogonally adjacent in-bounds coordinates."""
        x, y = coord
        result = []
        for dx, dy in self.DIRECTIONS:
            n = (x + dx, y + dy)
            if self.in_bounds(n):
                result.append(n)
        return result

    @staticmethod
    def distance(a: Coord, b: Coord) -> int:
        """Manhattan distance in tiles."""
        return abs(a[0] - b[0]) + abs(a[1] - b[1])

    def coords_in_band(self, center: Coord, min_range: int, max_range: int) -> list[Coord]:
        """In-bounds coordinates whose distance from center lies within [min_range, max_range]."""
        cx, cy = center
        result = []
        for dx in range(-max_range, max_range + 1):
            span = max_range - abs(dx)
            for dy in range(-span, span + 1):
                c = (cx + dx, cy + dy)
                if min_range <= abs(dx) + abs(dy) and self.in_bounds(c):
                    result.append(c)
        return result

    # Movement
    def movement_cost(self, terrain: str, unit_type) -> Optional[int]:
        """Cost for a unit type to enter a tile of the given terrain (None if impassable)."""
        return self.movement_classes[unit_type.movement_class].cost(terrain)

    def entry_cost(self, coord: Coord, unit_type) -> Optional[int]:
        return self.movement_cost(self.tile_at(coord).terrain, unit_type)

    def find_path(
        self,
        start: Coord,
        goal: Coord,
        unit_type,
        max_cost: Optional[int] = None,
        can_enter: Optional[Callable[[Coord], bool]] = None,
    ) -> list[Coord]:
        """
        Cheapest path using A*.

        Returns tiles from start (excluded) to goal (included), or [] when
        no path exists within max_cost. can_enter filters intermediate and
        goal tiles beyond terrain passability.
        """
        self.tile_at(start)
        self.tile_at(goal)
        if start == goal:
            return []

        open_set = [(0, start)]
        came_from: dict[Coord, Coord] = {}
        g_score = {start: 0}

        while open_set:
            _, current = heapq.heappop(open_set)

            if current == goal:
                path = [current]
                while came_from.get(current) != start:
                    current = came_from[current]
                    path.append(current)
                return list(reversed(path))

            for neighbor in self.neighbors(current):
                move_cost = self.entry_cost(neighbor, unit_type)
                if move_cost is None:
                    continue
                if can_enter is not None and not can_enter(neighbor):
                    continue

                tentative_g = g_score[current] + move_cost
                if max_cost is not None and tentative_g > max_cost:
                    continue

                if neighbor not in g_score or tentative_g < g_score[neighbor]:
                    came_from[neighbor] = current
                    g_score[neighbor] = tentative_g
                    f_score = tentative_g + self.distance(neighbor, goal)
                    heapq.heappush(open_set, (f_score, neighbor))

        return []

    def reachable(
        self,
        start: Coord,
        unit_type,
        budget: int,
        can_enter: Optional[Callable[[Coord], bool]] = None,
    ) -> dict[Coord, int]:
        """Every tile reachable within budget, mapped to its cheapest cost (start excluded)."""
        self.tile_at(start)
        best = {start: 0}
        frontier = [(0, start)]

        while frontier:
            cost, current = heapq.heappop(frontier)
            if cost > best.get(current, cost):
                continue
            for neighbor in self.neighbors(current):
                move_cost = self.entry_cost(neighbor, unit_type)
                if move_cost is None:
                    continue
                if can_enter is not None and not can_enter(neighbor):
                    continue
                total = cost + move_cost
                if total <= budget and total < best.get(neighbor, budget + 1):
                    best[neighbor] = total
                    heapq.heappush(frontier, (total, neighbor))

        del best[start]
        return best

    def get_stats(self) -> dict:
        """Get map statistics."""
        terrain_counts: dict[str, int] = {}
        for tile in self.tiles.values():
            terrain_counts[tile.terrain] = terrain_counts.get(tile.terrain, 0) + 1

        return {
            "width": self.width,
            "height": self.height,
            "total_tiles": len(self.tiles),
            "occupied_tiles": len(self.units()),
            "terrain_distribution": terrain_counts,
        }

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from pygame.math import Vector3

from .agent import Agent, ResourceLevels
from .config import WorldConfig
from .rng import DeterministicRng
from .state import Cell, CellGrid


def grid_coordinate(value: float, world: WorldConfig) -> int:
    return int(math.floor((value + world.half_size) / world.cell_size))


def cell_index(position: Vector3, grid: CellGrid, world: WorldConfig) -> Optional[Tuple[int, int]]:
    """Grid index of the cell under ``position`` on the x/z plane, or None."""
    if not grid:
        return None
    x = grid_coordinate(position.x, world)
    z = grid_coordinate(position.z, world)
    if 0 <= x < len(grid) and 0 <= z < len(grid[0]):
        return x, z
    return None


def cell_at(position: Vector3, grid: CellGrid, world: WorldConfig) -> Optional[Cell]:
    index = cell_index(position, grid, world)
    if index is None:
        return None
    return grid[index[0]][index[1]]


def build_cell_grid(world: WorldConfig, rng: DeterministicRng) -> CellGrid:
    cell_size = world.cell_size
    offset = world.half_size - cell_size / 2.0
    grid: CellGrid = []
    for x in range(world.grid_size):
        column = []
        for z in range(world.grid_size):
            column.append(
                Cell(
                    position=Vector3(x * cell_size - offset, 0.0, z * cell_size - offset),
                    resources=ResourceLevels(food=world.base_food, water=world.base_water, light=world.base_light),
                    elevation=rng.next_float(),
                    temperature=world.cell_temperature,
                )
            )
        grid.append(column)
    return grid


def rebuild_occupancy(grid: CellGrid, agents: Iterable[Agent], world: WorldConfig) -> None:
    for column in grid:
        for cell in column:
            cell.occupied = False
            cell.occupants.clear()
    for agent in agents:
        cell = cell_at(agent.position, grid, world)
        if cell is None:
            continue
        cell.occupied = True
        cell.occupants.append(agent.id)

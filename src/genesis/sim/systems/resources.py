from __future__ import annotations

import logging
import math
from typing import Dict, List

from pygame.math import Vector3

from ..core.agent import ResourceLevels
from ..core.config import WorldConfig
from ..core.grid import grid_coordinate
from ..core.rng import DeterministicRng
from ..core.state import CellGrid, EnvironmentalParameters, Resource, ResourceKind, WeatherCondition, copy_grid
from ..utils.math3d import _clamp01

logger = logging.getLogger(__name__)

MAX_RESOURCE_AMOUNT = 100.0
CATASTROPHE_SEVERITY = 0.3

WEATHER_IMPACTS: Dict[WeatherCondition, ResourceLevels] = {
    WeatherCondition.CLEAR: ResourceLevels(food=1.0, water=1.0, light=1.0),
    WeatherCondition.RAIN: ResourceLevels(food=1.0, water=1.5, light=0.7),
    WeatherCondition.STORM: ResourceLevels(food=0.8, water=2.0, light=0.3),
    WeatherCondition.DROUGHT: ResourceLevels(food=0.6, water=0.3, light=1.2),
}


def generate_initial_resources(world: WorldConfig, rng: DeterministicRng) -> List[Resource]:
    half = world.half_size
    resources: List[Resource] = []

    def _ground_position(height: float = 0.0) -> Vector3:
        return Vector3(rng.next_range(-half, half), height, rng.next_range(-half, half))

    for _ in range(world.food_count):
        resources.append(
            Resource(
                id=rng.next_uuid(),
                kind=ResourceKind.FOOD,
                position=_ground_position(),
                amount=rng.next_range(50.0, 100.0),
                regeneration_rate=0.01,
            )
        )
    for _ in range(world.water_count):
        resources.append(
            Resource(
                id=rng.next_uuid(),
                kind=ResourceKind.WATER,
                position=_ground_position(),
                amount=rng.next_range(70.0, 150.0),
                regeneration_rate=0.02,
            )
        )
    for _ in range(world.light_count):
        resources.append(
            Resource(
                id=rng.next_uuid(),
                kind=ResourceKind.LIGHT,
                position=_ground_position(world.light_height),
                amount=MAX_RESOURCE_AMOUNT,
                regeneration_rate=0.0,
            )
        )
    return resources


def place_resources_in_cells(resources: List[Resource], grid: CellGrid, world: WorldConfig) -> None:
    """Reset every cell to base levels and add each resource's radial falloff."""
    for column in grid:
        for cell in column:
            cell.resources = ResourceLevels(food=world.base_food, water=world.base_water, light=world.base_light)
    if not grid:
        return

    radius = world.influence_radius
    reach = int(math.floor(radius))
    width = len(grid)
    depth = len(grid[0])
    for resource in resources:
        grid_x = grid_coordinate(resource.position.x, world)
        grid_z = grid_coordinate(resource.position.z, world)
        for x in range(max(0, grid_x - reach), min(width - 1, grid_x + reach) + 1):
            for z in range(max(0, grid_z - reach), min(depth - 1, grid_z + reach) + 1):
                dist = math.sqrt((x - grid_x) ** 2 + (z - grid_z) ** 2)
                if dist > radius:
                    continue
                influence = (1.0 - dist / radius) * (resource.amount / MAX_RESOURCE_AMOUNT)
                levels = grid[x][z].resources
                if resource.kind is ResourceKind.FOOD:
                    levels.food = _clamp01(levels.food + influence)
                elif resource.kind is ResourceKind.WATER:
                    levels.water = _clamp01(levels.water + influence)
                else:
                    levels.light = _clamp01(levels.light + influence)


def update_resource_levels(resources: List[Resource], delta_time: float) -> List[Resource]:
    updated: List[Resource] = []
    for resource in resources:
        if resource.kind is ResourceKind.LIGHT:
            updated.append(resource)
            continue
        regenerated = resource.copy()
        regenerated.amount = min(MAX_RESOURCE_AMOUNT, resource.amount + resource.regeneration_rate * delta_time)
        regenerated.last_regeneration = resource.last_regeneration + delta_time
        updated.append(regenerated)
    return updated


def calculate_resource_distribution(grid: CellGrid, params: EnvironmentalParameters) -> CellGrid:
    impact = WEATHER_IMPACTS[WeatherCondition(params.weather_condition)]
    abundance = params.resource_abundance
    clumping = params.resource_distribution
    updated = copy_grid(grid)
    for column in updated:
        for cell in column:
            levels = cell.resources
            food = _clamp01(levels.food * impact.food * abundance)
            water = _clamp01(levels.water * impact.water * abundance)
            light = _clamp01(levels.light * impact.light)
            if clumping > 0.5:
                amplify = 1.0 + (clumping - 0.5) * 2.0
                food = food**amplify
                water = water**amplify
            else:
                even = 1.0 - clumping
                food = food * (1.0 - even) + 0.5 * even
                water = water * (1.0 - even) + 0.5 * even
            cell.resources = ResourceLevels(food=_clamp01(food), water=_clamp01(water), light=light)
    return updated


def apply_catastrophe(resources: List[Resource], intensity: float) -> List[Resource]:
    factor = 1.0 - intensity * CATASTROPHE_SEVERITY
    damaged: List[Resource] = []
    for resource in resources:
        hit = resource.copy()
        hit.amount = max(0.0, resource.amount * factor)
        damaged.append(hit)
    logger.info("catastrophe scaled %d resources by %.3f", len(damaged), factor)
    return damaged

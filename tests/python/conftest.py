import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from genesis.sim.core.config import SimulationConfig  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that pin default configuration values",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration defaults change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration defaults are modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def breeding_config() -> SimulationConfig:
    """Adam and Eve side by side with reproduction gates opened."""
    config = SimulationConfig(seed=11)
    config.agents.reproduction_threshold = 0.0
    config.agents.reproduction_cooldown = 0.0
    config.agents.adam_position = (0.0, 0.0, 0.0)
    config.agents.eve_position = (0.0, 0.0, 0.0)
    return config

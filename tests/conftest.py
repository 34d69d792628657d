import random
import textwrap

import pytest

from keymaze.agents.scout.compute.grid import Coord, GridView, Kind
from keymaze.config import load_config
from keymaze.environments import GridMaze

_KINDS = {
    ".": Kind.OPEN,
    "@": Kind.OPEN,
    "#": Kind.BLOCKED,
    "K": Kind.KEY,
    "D": Kind.DOOR,
    "E": Kind.EXIT,
}

KEY_DOOR_MAZE = """
#####
#K###
#@DE#
#####
"""

VAULT_MAZE = """
###########
#@....#..K#
#.###.#.###
#.#K..D...#
#.#####.#.#
#...K...#D#
#######.#E#
###########
"""


def _kinds_from_ascii(layout: str) -> dict[Coord, Kind]:
    """Known cells of an ASCII map, relative to '@' with north as +y. Spaces are unknown."""
    lines = textwrap.dedent(layout).strip("\n").splitlines()
    start = next((c, r) for r, line in enumerate(lines) for c, ch in enumerate(line) if ch == "@")
    kinds = {}
    for r, line in enumerate(lines):
        for c, ch in enumerate(line):
            if ch == " ":
                continue
            kinds[(c - start[0], start[1] - r)] = _KINDS[ch]
    return kinds


@pytest.fixture
def ascii_kinds():
    return _kinds_from_ascii


@pytest.fixture
def ascii_grid():
    def build(layout: str) -> GridView:
        return GridView.snapshot(_kinds_from_ascii(layout))

    return build


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def config():
    return load_config(overrides=["agent.scout.strict=true", "agent.scout.seed=7"])


@pytest.fixture
def key_door_maze():
    return GridMaze(KEY_DOOR_MAZE, vision_depth=3, max_steps=50)


@pytest.fixture
def vault_maze():
    return GridMaze(VAULT_MAZE, vision_depth=3, max_steps=500)

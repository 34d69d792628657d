"""Entry point: python -m keymaze --maze MAZE.txt --episodes 5"""

import argparse
import logging
from pathlib import Path

from .agents import ScoutAgent
from .config import load_config
from .environments import GridMaze, run_episode


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the scout agent on ASCII key/door mazes")
    parser.add_argument(
        "--maze",
        type=Path,
        action="append",
        required=True,
        help="Maze layout file; repeat to cycle through several mazes",
    )
    parser.add_argument("--episodes", type=int, default=1, help="Episodes to play")
    parser.add_argument("--config", type=Path, default=None, help="YAML file merged over the defaults")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config override, e.g. agent.scout.seed=7",
    )
    parser.add_argument("--render", action="store_true", help="Print the learned map after each episode")
    args = parser.parse_args()

    for path in args.maze:
        if not path.exists():
            print(f"Error: Maze file not found: {path}")
            raise SystemExit(1)

    cfg = load_config(args.config, [*args.overrides, f"agent.scout.maze_count={len(args.maze)}"])
    logging.basicConfig(
        level=getattr(logging, str(cfg.logging.level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    maze_cfg = cfg.env.maze
    envs = [
        GridMaze.from_file(path, vision_depth=maze_cfg.get("vision_depth", 3), max_steps=maze_cfg.get("max_steps", 1000))
        for path in args.maze
    ]
    agent = ScoutAgent(cfg)

    for episode in range(1, args.episodes + 1):
        maze_id = agent.memory.next_maze_id()
        result = run_episode(agent, envs[maze_id], maze_id)
        status = "escaped" if result.won else "failed"
        print(f"Episode {episode}: maze {maze_id} {status} in {result.steps} steps "
              f"(best case {agent.memory.best_case(maze_id)})")
        if args.render:
            print(agent.map.render())

    if agent.storage:
        agent.storage.close()


if __name__ == "__main__":
    main()

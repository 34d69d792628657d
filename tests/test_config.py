from keymaze.config import load_config


def test_defaults():
    cfg = load_config()
    assert cfg.agent.scout.safe_action == "south"
    assert cfg.agent.scout.key_radius_no_keys == 7
    assert cfg.agent.scout.key_radius_one_key == 3
    assert cfg.agent.scout.get("memory_path") is None
    assert cfg.env.maze.vision_depth == 3


def test_file_then_overrides(tmp_path):
    path = tmp_path / "local.yaml"
    path.write_text("agent:\n  planner:\n    max_queries: 50\n    time_limit: 1.5\n")
    cfg = load_config(path, ["agent.planner.max_queries=10", "agent.scout.strict=true"])

    assert cfg.agent.planner.max_queries == 10
    assert cfg.agent.planner.time_limit == 1.5
    assert cfg.agent.scout.strict is True
    assert cfg.agent.scout.safe_action == "south"

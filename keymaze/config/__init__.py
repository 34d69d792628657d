"""Configuration loading.

The packaged config.yaml holds every default. Callers override single keys
with dotlist entries such as ``agent.scout.strict=true``.
"""

from pathlib import Path

from omegaconf import DictConfig, OmegaConf

DEFAULT_CONFIG = Path(__file__).parent / "config.yaml"


def load_config(path: Path | str | None = None, overrides: list[str] | None = None) -> DictConfig:
    """Load the default config, merge an optional file on top, then dotlist overrides."""
    cfg = OmegaConf.load(DEFAULT_CONFIG)
    if path is not None:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(Path(path)))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    return cfg

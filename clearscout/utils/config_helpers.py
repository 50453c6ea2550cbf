import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

load_dotenv()
CONFIG_PATH = Path(os.getenv("CONFIG_PATH", "config"))

PathLike = Union[str, Path]


def merge_configs(config_paths: Sequence[PathLike]) -> DictConfig:
    """
    Layer YAML files into one config; each file overrides keys set by the files before it.

    Args:
        config_paths: YAML files, lowest precedence first

    Raises:
        ValueError: If no paths are given
        FileNotFoundError: If a file is missing

    Example:
        >>> config = merge_configs(["config/collection.yaml", "config/local.yaml"])
        >>> config.results_wanted
        50
    """
    if not config_paths:
        raise ValueError("At least one config path is required")

    base, *layers = config_paths
    config = OmegaConf.load(base)
    for layer in layers:
        config = OmegaConf.unsafe_merge(config, OmegaConf.load(layer))
    return config


def load_config(name: str, overrides: Optional[List[PathLike]] = None, config_dir: PathLike = None) -> DictConfig:
    """
    Load ``<config_dir>/<name>.yaml`` and layer any override files on top.

    Args:
        name: Base config name without extension (e.g. "fetch", "collection")
        overrides: Extra YAML files merged in order after the base file
        config_dir: Directory holding the base file (default: CONFIG_PATH from environment)
    """
    config_dir = Path(config_dir) if config_dir is not None else CONFIG_PATH
    return merge_configs([config_dir / f"{name}.yaml", *(overrides or [])])

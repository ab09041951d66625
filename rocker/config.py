from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml

from rocker_core.runtime.exec_service import DEFAULT_RUNNER_URL

CONFIG_ENV = "ROCKER_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".rocker" / "config.yaml"

@dataclass(frozen=True)
class EngineConfig:
    base_url: Optional[str] = None   # None = docker.from_env()
    timeout_s: int = 60

@dataclass(frozen=True)
class RemoteConfig:
    runner_url: str = DEFAULT_RUNNER_URL
    timeout_s: int = 30

@dataclass(frozen=True)
class RockerConfig:
    version: int = 1
    engine: EngineConfig = field(default_factory=EngineConfig)
    registry_mirror: Optional[str] = None
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    events_path: Optional[Path] = None

    def mirrored(self, image: str) -> str:
        """Prefix ``image`` with the registry mirror, if one is configured."""
        if not self.registry_mirror:
            return image
        prefix = self.registry_mirror
        if not prefix.endswith("/"):
            prefix += "/"
        if image.startswith(prefix):
            return image
        return prefix + image


def resolve_config_path(explicit: Optional[Path] = None) -> Optional[Path]:
    if explicit is not None:
        return explicit
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env)
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def load_config(path: Optional[str | Path] = None) -> RockerConfig:
    if path is None:
        return RockerConfig()
    p = Path(path)
    data = yaml.safe_load(p.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file {p}: expected a mapping")

    engine = _section(data, "engine", p)
    registry = _section(data, "registry", p)
    remote = _section(data, "remote", p)
    audit = _section(data, "audit", p)

    events_path = audit.get("events_path")
    cfg = RockerConfig(
        version=int(data.get("version", 1)),
        engine=EngineConfig(
            base_url=engine.get("base_url"),
            timeout_s=int(engine.get("timeout_s", 60)),
        ),
        registry_mirror=registry.get("mirror"),
        remote=RemoteConfig(
            runner_url=str(remote.get("runner_url", DEFAULT_RUNNER_URL)),
            timeout_s=int(remote.get("timeout_s", 30)),
        ),
        events_path=Path(events_path).expanduser() if events_path else None,
    )
    _validate_config(cfg)
    return cfg


def dump_effective_config(cfg: RockerConfig) -> str:
    out: Dict[str, Any] = {
        "version": cfg.version,
        "engine": {
            "base_url": cfg.engine.base_url,
            "timeout_s": cfg.engine.timeout_s,
        },
        "registry": {
            "mirror": cfg.registry_mirror,
        },
        "remote": {
            "runner_url": cfg.remote.runner_url,
            "timeout_s": cfg.remote.timeout_s,
        },
        "audit": {
            "events_path": str(cfg.events_path) if cfg.events_path else None,
        },
    }
    return yaml.safe_dump(out, sort_keys=True)


def _section(data: Dict[str, Any], key: str, path: Path) -> Dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Invalid config file {path}: '{key}' must be a mapping")
    return section


def _validate_config(cfg: RockerConfig) -> None:
    if cfg.version != 1:
        raise ValueError(f"Unsupported config version: {cfg.version}")
    if cfg.engine.timeout_s <= 0:
        raise ValueError(f"Invalid engine.timeout_s: {cfg.engine.timeout_s}")
    if cfg.remote.timeout_s <= 0:
        raise ValueError(f"Invalid remote.timeout_s: {cfg.remote.timeout_s}")
    if not cfg.remote.runner_url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid remote.runner_url: {cfg.remote.runner_url}")

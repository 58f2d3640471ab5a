"""
Engine configuration, loaded from a YAML file.

    app_dir: /home/me/.ircmacro
    max_depth: 32
    aliases:
      greet: "Hello $1!"
      op: ["$iif($1 isin $chan,@$1,$1)"]
    hash_tables:
      seen: { alice: "yesterday" }
    addresses:
      alice: alice!~al@host.example.org
    channels:
      "#python": [alice, bob]
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ircmacro.macro_parser import DEFAULT_MAX_DEPTH


@dataclass
class MacroConfig:
    app_dir: Optional[str] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    aliases: Dict[str, Any] = field(default_factory=dict)
    hash_tables: Dict[str, Dict[str, str]] = field(default_factory=dict)
    addresses: Dict[str, str] = field(default_factory=dict)
    channels: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[str] = None) -> 'MacroConfig':
        cfg = cls()
        app_dir = data.get("app_dir")
        if app_dir:
            app_dir = os.path.expanduser(str(app_dir))
            if base_dir and not os.path.isabs(app_dir):
                app_dir = os.path.normpath(os.path.join(base_dir, app_dir))
            cfg.app_dir = app_dir
        elif base_dir:
            cfg.app_dir = base_dir
        if data.get("max_depth") is not None:
            cfg.max_depth = int(data["max_depth"])
        for name in ("aliases", "hash_tables", "addresses", "channels"):
            value = data.get(name)
            if isinstance(value, dict):
                setattr(cfg, name, value)
        return cfg


def load_config(path: Union[str, Path, None] = None) -> MacroConfig:
    """Read a YAML config; a missing path gives the defaults."""
    cfg = MacroConfig()
    if path is not None:
        p = Path(path)
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            if not isinstance(data, dict):
                raise ValueError(f"config file must contain a mapping: {path}")
            cfg = MacroConfig.from_dict(data, base_dir=str(p.parent.resolve()))
    env_depth = os.environ.get("IRCMACRO_MAX_DEPTH")
    if env_depth:
        try:
            cfg.max_depth = int(env_depth)
        except ValueError:
            pass
    return cfg

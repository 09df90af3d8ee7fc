import copy
import os
from typing import Any, Dict, Optional

import yaml
from core import load_env


DEFAULT_CONFIG: Dict[str, Any] = {
    "decoder": {
        "backend": "capstone",
        "arch": "x86",
        "mode": "64",
    },
    "graph": {
        "base_address": 0,
    },
    "render": {
        "graph_name": "disassembly",
        "taken_color": "blue",
        "not_taken_color": "red",
        "fallthrough_color": "gray",
    },
    "neo4j": {
        "uri": "bolt://127.0.0.1:7687",
        "user": "neo4j",
        "password": "neo4j",
        "database": "neo4j",
    },
    "tools": {
        "r2_path": "",
    },
}

_ENV_MAP = {
    "CFG_DECODER": ("decoder", "backend"),
    "CFG_ARCH": ("decoder", "arch"),
    "CFG_MODE": ("decoder", "mode"),
    "CFG_BASE_ADDRESS": ("graph", "base_address"),
    "NEO4J_URI": ("neo4j", "uri"),
    "NEO4J_USER": ("neo4j", "user"),
    "NEO4J_PASSWORD": ("neo4j", "password"),
    "NEO4J_DATABASE": ("neo4j", "database"),
    "R2_PATH": ("tools", "r2_path"),
}

_ADDRESS_KEYS = {("graph", "base_address")}


def parse_address(value: Any) -> int:
    """Accept ints, hex ("0x401000") or decimal strings."""
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.startswith("0x"):
        return int(text, 16)
    return int(text, 10)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_config(path: str) -> Dict[str, Any]:
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    for p in (path, os.path.join(project_root, path)):
        if not os.path.exists(p):
            continue
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            print(f"[Config] Ignoring unreadable {p}: {e}")
            return {}
        return data if isinstance(data, dict) else {}
    return {}


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(config)
    for env_name, (section, key) in _ENV_MAP.items():
        raw = os.getenv(env_name)
        if raw is None:
            continue
        value: Any = raw
        if (section, key) in _ADDRESS_KEYS:
            try:
                value = parse_address(raw)
            except ValueError:
                continue
        out.setdefault(section, {})
        out[section][key] = value
    return out


def _normalise(config: Dict[str, Any]) -> Dict[str, Any]:
    graph = config.setdefault("graph", {})
    try:
        graph["base_address"] = parse_address(graph.get("base_address", 0))
    except ValueError:
        print(f"[Config] Bad base_address {graph.get('base_address')!r}, using 0")
        graph["base_address"] = 0
    decoder = config.setdefault("decoder", {})
    decoder["mode"] = str(decoder.get("mode", "64"))
    return config


_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def load_config(path: str = "config.yml") -> Dict[str, Any]:
    """Build a fresh configuration: defaults < config.yml < environment."""
    load_env()
    merged = _deep_merge(DEFAULT_CONFIG, _load_yaml_config(path))
    return _normalise(_apply_env_overrides(merged))


def get_config(path: str = "config.yml") -> Dict[str, Any]:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = load_config(path)
    return _CONFIG_CACHE


def reset_config() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = None

"""設定檔載入與基本驗證."""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = "figma-atoms.config.json"

# 已知有效的頂層欄位
_KNOWN_TOP_KEYS = {"figma", "gitlab", "openai", "classification", "matching", "export"}

# 各區塊已知欄位（用於拼字提示）
_KNOWN_SECTION_KEYS = {
    "figma": {"personalAccessToken", "fileKey", "nodeId"},
    "gitlab": {"token", "projectId", "baseUrl", "registryPaths", "ref"},
    "openai": {"apiKey", "model", "codegenModel", "temperature", "maxTokens"},
    "classification": {"sizeThreshold"},
    "matching": {"strategy"},
    "export": {"outputDir"},
}

_VALID_STRATEGIES = {"substring", "residue", "oracle"}

# (section, key) → 環境變數
_ENV_FALLBACKS = {
    ("figma", "personalAccessToken"): "FIGMA_TOKEN",
    ("gitlab", "token"): "GITLAB_TOKEN",
    ("gitlab", "projectId"): "GITLAB_PROJECT_ID",
    ("gitlab", "baseUrl"): "GITLAB_BASE_URL",
    ("openai", "apiKey"): "OPENAI_API_KEY",
}


class ConfigError(Exception):
    """缺少必要設定."""

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(f"missing required settings: {', '.join(self.missing)}")


def _warn(msg: str) -> None:
    print(f"   ⚠️  [config] {msg}")


def validate_config(cfg: dict) -> None:
    """對 config 做基本欄位驗證，印出警告但不拋例外。"""
    if not cfg:
        return

    for key in cfg:
        if key not in _KNOWN_TOP_KEYS:
            known = ", ".join(sorted(_KNOWN_TOP_KEYS))
            _warn(f"未知頂層欄位 '{key}'（已知欄位：{known}）")

    for section, known_keys in _KNOWN_SECTION_KEYS.items():
        section_cfg = cfg.get(section, {})
        if not isinstance(section_cfg, dict):
            _warn(f"[{section}] 應為 JSON 物件，目前是 {type(section_cfg).__name__}")
            continue
        for key in section_cfg:
            if key not in known_keys:
                known = ", ".join(sorted(known_keys))
                _warn(f"[{section}] 未知欄位 '{key}'（已知欄位：{known}）")

    strategy = _section(cfg, "matching").get("strategy")
    if strategy and strategy not in _VALID_STRATEGIES:
        valid = ", ".join(sorted(_VALID_STRATEGIES))
        _warn(f"matching.strategy '{strategy}' 不在已知值中（{valid}）")

    threshold = _section(cfg, "classification").get("sizeThreshold")
    if threshold is not None and (isinstance(threshold, bool) or not isinstance(threshold, (int, float))):
        _warn(f"classification.sizeThreshold 應為數字，目前是 {type(threshold).__name__}")

    for key in ("temperature", "maxTokens"):
        val = _section(cfg, "openai").get(key)
        if val is not None and not isinstance(val, (int, float)):
            _warn(f"openai.{key} 應為數字，目前是 {type(val).__name__}")

    paths = _section(cfg, "gitlab").get("registryPaths")
    if paths is not None and not (isinstance(paths, list) and all(isinstance(p, str) for p in paths)):
        _warn("gitlab.registryPaths 應為字串陣列")


def _section(cfg: dict, name: str) -> dict:
    section = (cfg or {}).get(name, {})
    return section if isinstance(section, dict) else {}


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """載入 JSON 設定檔，不存在則回傳空 dict；存在則做基本驗證。"""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        cfg: Any = json.load(f)
    if not isinstance(cfg, dict):
        print(f"   ⚠️  [config] '{config_path}' 格式錯誤，應為 JSON 物件，回傳空設定。")
        return {}
    validate_config(cfg)
    return cfg


def resolve_settings(cfg: dict, env_file: str = ".env") -> dict:
    """回傳補上環境變數預設值的設定（先載入 ``.env``）。"""
    if env_file and Path(env_file).exists():
        load_dotenv(env_file)
    resolved = {name: dict(_section(cfg, name)) for name in _KNOWN_SECTION_KEYS}
    for (section, key), env_name in _ENV_FALLBACKS.items():
        if not resolved[section].get(key) and os.environ.get(env_name):
            resolved[section][key] = os.environ[env_name]
    return resolved


def require_settings(settings: dict, names: list) -> None:
    """``names`` 中任何空值的 ``section.key`` 都列在 ``ConfigError`` 中拋出。"""
    missing = []
    for name in names:
        section, _, key = name.partition(".")
        if not _section(settings, section).get(key):
            missing.append(_ENV_FALLBACKS.get((section, key), name))
    if missing:
        raise ConfigError(missing)

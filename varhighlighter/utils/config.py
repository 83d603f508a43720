import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from varhighlighter.utils.logger import logger

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"


def get_config(config_file):
    if not os.path.isfile(config_file):
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with open(config_file, "r", encoding="utf-8") as cf:
        parsed_yaml = yaml.load(cf, Loader=yaml.FullLoader)
    return parsed_yaml or {}


def merge_configs(config_list):
    assert len(config_list) > 0
    merged_config = {}
    for cl in config_list:
        merged_config.update(cl)
    return merged_config


@dataclass(frozen=True)
class HighlighterSettings:
    """Timing and behaviour knobs of the highlight pipeline."""

    poll_interval_ms: int = 50
    resolve_timeout_ms: int = 2000
    scroll_lock_ms: int = 1100
    settle_delay_ms: int = 50
    hover_delay_ms: int = 500
    max_selection_length: int = 100
    case_sensitive: bool = True
    thumbnail_scale: float = 0.3
    popup_offset: int = 16
    context_chars: int = 150


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
        raise ValueError(f"{name} must be true or false")
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, not a boolean")
    if isinstance(default, int):
        coerced = float(value)
        if not coerced.is_integer():
            raise ValueError(f"{name} must be a whole number")
        coerced = int(coerced)
    else:
        coerced = float(value)
    if coerced < 0:
        raise ValueError(f"{name} must not be negative")
    return coerced


def settings_from_mapping(mapping: Optional[Dict[str, Any]]) -> HighlighterSettings:
    defaults = HighlighterSettings()
    if not isinstance(mapping, dict):
        return defaults
    known = {field.name: getattr(defaults, field.name)
             for field in dataclasses.fields(HighlighterSettings)}
    values: Dict[str, Any] = {}
    for key, value in mapping.items():
        if key not in known:
            logger.warning("Ignoring unknown highlighter setting %r", key)
            continue
        try:
            values[key] = _coerce(key, value, known[key])
        except (TypeError, ValueError) as exc:
            logger.warning("Invalid value for %s (%r): %s; using %r",
                           key, value, exc, known[key])
    return dataclasses.replace(defaults, **values)


def load_settings(config_file: Optional[str | Path] = None) -> HighlighterSettings:
    """Load settings from the packaged defaults, overlaid with ``config_file``."""
    configs = []
    try:
        configs.append(get_config(str(DEFAULT_CONFIG_PATH)).get("highlighter") or {})
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read default config %s: %s", DEFAULT_CONFIG_PATH, exc)
        configs.append({})
    if config_file is not None:
        user_config = get_config(str(config_file))
        if isinstance(user_config, dict):
            configs.append(user_config.get("highlighter", user_config) or {})
    return settings_from_mapping(merge_configs(configs))

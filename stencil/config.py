"""
Engine configuration.

Configuration is a plain YAML mapping:

    builtins: [defaulttags, defaultfilters, markup]
    libraries:
      markup: myproject.templatetags.markup
      humanize: myproject.templatetags.humanize:register
    dirs: [templates]
    encoding: utf-8
    string_if_invalid: ""
    precedence: latest
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError
from .template.registry import Precedence

_yaml = YAML(typ="safe")

DEFAULT_BUILTINS = ["defaulttags", "defaultfilters"]
CONFIG_FILE_NAME = "stencil.yaml"


@dataclass
class EngineConfig:
    """Settings of one Engine."""
    builtins: List[str] = field(default_factory=lambda: list(DEFAULT_BUILTINS))
    # name -> "module" or "module:attribute"
    libraries: Dict[str, str] = field(default_factory=dict)
    dirs: List[Path] = field(default_factory=list)
    encoding: str = "utf-8"
    string_if_invalid: str = ""
    precedence: Precedence = Precedence.LATEST_WINS

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> EngineConfig:
        """
        Builds a config from a raw mapping (as read from YAML).

        Args:
            data: Raw configuration mapping
            base_dir: Directory that relative `dirs` entries are resolved against

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {"builtins", "libraries", "dirs", "encoding", "string_if_invalid", "precedence"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        builtins = _str_list(data.get("builtins", DEFAULT_BUILTINS), "builtins")

        libraries_raw = data.get("libraries", {}) or {}
        if not isinstance(libraries_raw, dict):
            raise ConfigError("'libraries' must be a mapping of name to module path")
        libraries: Dict[str, str] = {}
        for name, target in libraries_raw.items():
            if not isinstance(target, str) or not target:
                raise ConfigError(f"Library '{name}' must map to a module path string")
            libraries[str(name)] = target

        dirs = []
        for entry in _str_list(data.get("dirs", []), "dirs"):
            path = Path(entry)
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            dirs.append(path)

        encoding = data.get("encoding", "utf-8")
        if not isinstance(encoding, str):
            raise ConfigError("'encoding' must be a string")

        string_if_invalid = data.get("string_if_invalid", "")
        if not isinstance(string_if_invalid, str):
            raise ConfigError("'string_if_invalid' must be a string")

        precedence_raw = data.get("precedence", Precedence.LATEST_WINS.value)
        try:
            precedence = Precedence(precedence_raw)
        except ValueError:
            choices = ", ".join(p.value for p in Precedence)
            raise ConfigError(f"Invalid precedence '{precedence_raw}', expected one of: {choices}") from None

        return cls(
            builtins=builtins,
            libraries=libraries,
            dirs=dirs,
            encoding=encoding,
            string_if_invalid=string_if_invalid,
            precedence=precedence,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializes back to a YAML-friendly mapping."""
        return {
            "builtins": list(self.builtins),
            "libraries": dict(self.libraries),
            "dirs": [str(d) for d in self.dirs],
            "encoding": self.encoding,
            "string_if_invalid": self.string_if_invalid,
            "precedence": self.precedence.value,
        }


def parse_library_target(target: str) -> Tuple[str, str]:
    """
    Splits "module:attribute" into its parts; the attribute defaults to "library".

    Raises:
        ConfigError: If either part is empty
    """
    module, sep, attribute = target.partition(":")
    if not module or (sep and not attribute):
        raise ConfigError(f"Invalid library target '{target}', expected 'module' or 'module:attribute'")
    return module, attribute or "library"


def _str_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _read_yaml_map(path: Path) -> dict:
    """Reads a YAML file and returns its top-level mapping."""
    if not path.is_file():
        return {}
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def load_config(path: Path) -> EngineConfig:
    """
    Loads engine configuration from a YAML file.

    A missing file yields the default configuration. Relative `dirs`
    are resolved against the directory containing the file.

    Args:
        path: Path to the config file, or a directory containing stencil.yaml
    """
    path = Path(path)
    if path.is_dir():
        path = path / CONFIG_FILE_NAME
    raw = _read_yaml_map(path)
    return EngineConfig.from_dict(raw, base_dir=path.parent)


__all__ = ["EngineConfig", "load_config", "parse_library_target", "DEFAULT_BUILTINS", "CONFIG_FILE_NAME"]

"""
Конфигурация движка и загрузка переменных для CLI.

Конфигурация читается из YAML (`vtl.yaml`) через ruamel.yaml
и валидируется моделью pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigLoadError

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")

CONFIG_FILE_NAME = "vtl.yaml"


class EngineConfig(BaseModel):
    """
    Настройки рендеринга.

    Attributes:
        template_root: Каталог шаблонов; относительно него ищутся
            имена из #parse и относительные пути шаблонов
        encoding: Кодировка файлов шаблонов
        variables: Переменные по умолчанию
    """
    model_config = ConfigDict(extra="forbid")

    template_root: Path = Path(".")
    encoding: str = "utf-8"
    variables: Dict[str, Any] = Field(default_factory=dict)


def _read_yaml(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(f"Cannot read {path}: {e}") from e
    try:
        return _yaml.load(text)
    except YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in {path}: {e}") from e


def load_config(path: Optional[Path] = None, cwd: Optional[Path] = None) -> EngineConfig:
    """
    Загружает конфигурацию.

    Args:
        path: Явный путь к файлу конфигурации (--config)
        cwd: Рабочий каталог, в котором ищется vtl.yaml, если path не задан

    Returns:
        EngineConfig с абсолютным template_root. Без файла конфигурации
        корнем шаблонов считается cwd.
    """
    cwd = (cwd or Path.cwd()).resolve()
    if path is None:
        candidate = cwd / CONFIG_FILE_NAME
        if not candidate.is_file():
            logger.debug(f"No {CONFIG_FILE_NAME} in {cwd}, using defaults")
            return EngineConfig(template_root=cwd)
        path = candidate
    else:
        path = (cwd / path).resolve()
        if not path.is_file():
            raise ConfigLoadError(f"Config file not found: {path}")

    data = _read_yaml(path)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigLoadError(f"{path}: top-level YAML must be a mapping")

    try:
        cfg = EngineConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigLoadError(f"{path}: {e}") from e

    if not cfg.template_root.is_absolute():
        cfg = cfg.model_copy(update={"template_root": (path.parent / cfg.template_root).resolve()})
    logger.debug(f"Loaded config from {path}: template_root={cfg.template_root}")
    return cfg


def load_variables(path: Path) -> Dict[str, Any]:
    """Читает файл переменных (YAML или JSON); верхний уровень должен быть отображением."""
    data = _read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigLoadError(f"{path}: variables file must contain a mapping")
    return {str(k): v for k, v in data.items()}


def parse_assignments(assignments: Iterable[str]) -> Dict[str, Any]:
    """
    Разбирает переопределения вида `name=value`.

    Значение читается как YAML-скаляр: `3` становится int, `true` — bool,
    пустое значение — None.
    """
    result: Dict[str, Any] = {}
    for item in assignments:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ConfigLoadError(f"Invalid --set value {item!r}: expected name=value")
        try:
            value = _yaml.load(raw) if raw.strip() else None
        except YAMLError as e:
            raise ConfigLoadError(f"Invalid value for {name}: {e}") from e
        result[name] = value
    return result


def merge_variables(
    config: EngineConfig,
    variable_files: Iterable[Path] = (),
    assignments: Iterable[str] = (),
) -> Dict[str, Any]:
    """Переменные в порядке приоритета: config, затем файлы --vars по порядку, затем --set."""
    merged: Dict[str, Any] = dict(config.variables)
    for path in variable_files:
        merged.update(load_variables(path))
    merged.update(parse_assignments(assignments))
    return merged


__all__ = [
    "CONFIG_FILE_NAME",
    "EngineConfig",
    "load_config",
    "load_variables",
    "parse_assignments",
    "merge_variables",
]

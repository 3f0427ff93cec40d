from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .config import EngineConfig, load_config, merge_variables
from .errors import ParseError, TemplateUserError
from .jsonic import dumps as jdumps
from .template import FileResourceResolver, Template
from .version import tool_version

logger = logging.getLogger(__name__)


def _setup_logging(debug: bool) -> None:
    """Один StreamHandler на логгер пакета; DEBUG по --debug или VTL_DEBUG."""
    pkg_logger = logging.getLogger("vtlite")
    level = logging.DEBUG if (debug or os.environ.get("VTL_DEBUG")) else logging.WARNING
    pkg_logger.setLevel(level)
    if not pkg_logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        pkg_logger.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vtl",
        description="vtlite: Velocity-style template renderer",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--debug", action="store_true", help="подробный лог в stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("template", help="путь к шаблону (относительный — от template_root)")
        sp.add_argument(
            "--config",
            metavar="FILE",
            help="файл конфигурации (по умолчанию vtl.yaml в текущем каталоге)",
        )

    sp_render = sub.add_parser("render", help="Вычислить шаблон и вывести результат")
    add_common(sp_render)
    sp_render.add_argument(
        "--vars",
        action="append",
        metavar="FILE",
        default=[],
        help="YAML/JSON-файл с переменными (можно указать несколько)",
    )
    sp_render.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        default=[],
        dest="assignments",
        help="переменная; значение читается как YAML-скаляр (можно указать несколько)",
    )
    sp_render.add_argument("--output", "-o", metavar="FILE", help="записать результат в файл")

    sp_check = sub.add_parser("check", help="Только разбор шаблона (JSON)")
    add_common(sp_check)

    return p


def _locate_template(cfg: EngineConfig, template: str) -> Tuple[Path, str]:
    """Абсолютный путь шаблона и его имя для сообщений об ошибках."""
    path = Path(template)
    if not path.is_absolute():
        path = cfg.template_root / path
    path = path.resolve()
    try:
        name = path.relative_to(cfg.template_root).as_posix()
    except ValueError:
        name = str(path)
    return path, name


def _load_template(cfg: EngineConfig, template: str) -> Template:
    path, name = _locate_template(cfg, template)
    resolver = FileResourceResolver(cfg.template_root, cfg.encoding)
    with path.open("r", encoding=cfg.encoding) as f:
        return Template.parse_from(f, name, resolver)


def _config_path(ns: argparse.Namespace) -> Optional[Path]:
    return Path(ns.config) if getattr(ns, "config", None) else None


def _run_check(ns: argparse.Namespace) -> int:
    cfg = load_config(_config_path(ns))
    try:
        template = _load_template(cfg, ns.template)
    except ParseError as e:
        data: Dict[str, Any] = {"ok": False, "error": str(e), "line": e.line}
        sys.stdout.write(jdumps(data) + "\n")
        return 2
    data = {"ok": True, "template": template.resource_name, "macros": sorted(template.macros)}
    sys.stdout.write(jdumps(data) + "\n")
    return 0


def _run_render(ns: argparse.Namespace) -> int:
    cfg = load_config(_config_path(ns))
    variables = merge_variables(cfg, [Path(v) for v in ns.vars], ns.assignments)
    template = _load_template(cfg, ns.template)
    text = template.evaluate(variables)
    if ns.output:
        Path(ns.output).write_text(text, encoding=cfg.encoding)
        logger.debug(f"Output written to {ns.output}")
    else:
        sys.stdout.write(text)
    return 0


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(ns.debug))

    try:
        if ns.cmd == "check":
            return _run_check(ns)
        if ns.cmd == "render":
            return _run_render(ns)
    except TemplateUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except OSError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())

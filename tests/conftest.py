from pathlib import Path

import pytest

from vtlite import MappingResourceResolver

# Импорт из унифицированной инфраструктуры
from tests.infrastructure.file_utils import write


@pytest.fixture
def tmpproj(tmp_path: Path):
    """Минимальный проект: vtl.yaml, каталог шаблонов и файл переменных."""
    root = tmp_path
    write(
        root / "vtl.yaml",
        "template_root: templates\n"
        "variables:\n"
        "  greeting: Hello\n"
        "  name: default\n",
    )
    write(root / "templates" / "hello.vm", "$greeting, $name!\n")
    write(
        root / "templates" / "page.vm",
        '#parse("macros.vm")\n'
        "#header($name)\n"
        "#foreach ($item in $items)$item#if ($foreach.hasNext), #end#end\n",
    )
    write(root / "templates" / "macros.vm", "#macro (header $title)== $title ==\n#end\n")
    write(root / "vars.yaml", "name: World\nitems: [a, b, c]\n")
    return root


@pytest.fixture
def resources():
    """Ресурсы #parse в памяти."""
    return MappingResourceResolver({
        "macros.vm": "#macro (twice $x)$x$x#end\n",
        "greeting.vm": "Hi $name",
        "broken.vm": "#if ($x)\nno end",
        "self.vm": '#parse("self.vm")',
    })

"""
vtlite: движок шаблонов на подмножестве Velocity Template Language.

    >>> from vtlite import parse
    >>> parse("Hello, $name!").evaluate({"name": "world"})
    'Hello, world!'
"""

from .errors import ConfigLoadError, EvaluationError, ParseError, TemplateUserError
from .template import FileResourceResolver, MappingResourceResolver, ResourceResolver, Template, parse

__all__ = [
    "parse",
    "Template",
    "ResourceResolver",
    "FileResourceResolver",
    "MappingResourceResolver",
    "TemplateUserError",
    "ParseError",
    "EvaluationError",
    "ConfigLoadError",
]

"""Stored procedure body templates.

Templates are opaque SQL shipped in ``fhirschema/templates``. The only
processing done here is token substitution: ``{{SCHEMA_NAME}}``,
``{{ADMIN_SCHEMA_NAME}}`` and ``{{SESSION_VARIABLE}}`` always, plus any extra
replacers the caller passes
(``{{LC_RESOURCE_TYPE}}`` and ``{{RESOURCE_TYPE}}`` for per-type bodies).
"""

from dataclasses import dataclass
from importlib import resources
from typing import Callable, Iterable, Optional

from fhirschema.control.constants import DEFAULT_SESSION_VARIABLE
from fhirschema.exceptions import TemplateError

__all__ = ["Replacer", "read_template", "resource_replacers", "template_provider"]

TEMPLATE_PACKAGE = "fhirschema.templates"


@dataclass(frozen=True)
class Replacer:
    """Replace every ``{{token}}`` in a template with value."""

    token: str
    value: str

    def apply(self, text: str) -> str:
        return text.replace("{{" + self.token + "}}", self.value)


def resource_replacers(resource_type: str) -> list[Replacer]:
    return [
        Replacer("LC_RESOURCE_TYPE", resource_type.lower()),
        Replacer("RESOURCE_TYPE", resource_type),
    ]


def read_template(
    admin_schema_name: str,
    schema_name: str,
    template_name: str,
    replacers: Optional[Iterable[Replacer]] = None,
    session_variable: str = DEFAULT_SESSION_VARIABLE,
) -> str:
    """Read a template and substitute the schema names, the tenant session
    variable name and any replacers."""
    try:
        text = resources.files(TEMPLATE_PACKAGE).joinpath(template_name).read_text(
            encoding="utf-8"
        )
    except (FileNotFoundError, OSError) as exc:
        raise TemplateError(f"Cannot read template '{template_name}': {exc}") from exc

    all_replacers = [
        Replacer("SCHEMA_NAME", schema_name),
        Replacer("ADMIN_SCHEMA_NAME", admin_schema_name),
        Replacer("SESSION_VARIABLE", session_variable),
    ]
    all_replacers.extend(replacers or [])
    for replacer in all_replacers:
        text = replacer.apply(text)
    return text


def template_provider(
    admin_schema_name: str,
    schema_name: str,
    template_name: str,
    replacers: Optional[Iterable[Replacer]] = None,
    session_variable: str = DEFAULT_SESSION_VARIABLE,
) -> Callable[[], str]:
    """Defer reading a template until the procedure body is needed."""
    frozen = list(replacers or [])
    return lambda: read_template(
        admin_schema_name, schema_name, template_name, frozen, session_variable
    )

"""Grant groups and the privileges they hold on schema objects."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fhirschema.exceptions import GrantError
from fhirschema.types import GrantGroup, ObjectKind, Privilege

if TYPE_CHECKING:
    from fhirschema.model.objects import DatabaseObject

__all__ = ["ALLOWED_PRIVILEGES", "GroupPrivilege", "check_grant", "privileges_for"]


ALLOWED_PRIVILEGES: dict[ObjectKind, frozenset[Privilege]] = {
    ObjectKind.TABLE: frozenset(
        {Privilege.SELECT, Privilege.INSERT, Privilege.UPDATE, Privilege.DELETE}
    ),
    ObjectKind.SEQUENCE: frozenset({Privilege.USAGE}),
    ObjectKind.PROCEDURE: frozenset({Privilege.EXECUTE}),
    ObjectKind.VARIABLE: frozenset({Privilege.READ}),
}


def check_grant(kind: ObjectKind, privilege: Privilege) -> None:
    """Raise GrantError if privilege cannot be granted on objects of this kind."""
    allowed = ALLOWED_PRIVILEGES.get(kind, frozenset())
    if privilege not in allowed:
        raise GrantError(
            f"Privilege {privilege.value} cannot be granted on a {kind.value}"
        )


@dataclass(frozen=True)
class GroupPrivilege:
    """A single privilege held by a grant group.

    At deploy time each (object, GroupPrivilege) pair expands to one GRANT
    statement. Nothing here deduplicates: attaching the same list twice to
    an object yields the grants twice.
    """

    group: GrantGroup
    privilege: Privilege

    def add_to_object(self, obj: "DatabaseObject") -> None:
        obj.add_privilege(self)


def privileges_for(group: GrantGroup, *privileges: Privilege) -> list[GroupPrivilege]:
    """Build the grant list for one group."""
    return [GroupPrivilege(group, p) for p in privileges]

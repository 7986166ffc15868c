"""Visibility scope for read queries.

The identity/role resolver lives outside this package and hands us a
resolved Scope. Admins and managers see every lead; everyone else sees
leads assigned to an advisor in visible_advisor_ids (an advisor's scope
is usually just their own id, a supervisor's is their team).
"""

from dataclasses import dataclass, field

UNRESTRICTED_ROLES = frozenset({"admin", "manager"})


@dataclass(frozen=True)
class Scope:
    actor_id: str
    roles: tuple = ()
    visible_advisor_ids: tuple = field(default_factory=tuple)

    @property
    def sees_everything(self):
        return bool(UNRESTRICTED_ROLES.intersection(self.roles))

    def apply(self, query, advisor_column):
        """Restrict `query` to rows whose `advisor_column` is visible."""
        if self.sees_everything:
            return query
        return query.filter(advisor_column.in_(list(self.visible_advisor_ids)))

"""
Tenant member lookup.

Membership is owned by the account/tenancy subsystem. The board engine only
needs a read-only list per tenant to render PERSON cells, so it depends on
this small interface instead of on that subsystem.
"""
from typing import Dict, List, Optional

from .schema import Member


class MemberDirectory:
    """Read-only lookup of tenant members."""

    def members_for(self, tenant_id: str) -> List[Member]:
        raise NotImplementedError


class StaticMemberDirectory(MemberDirectory):
    """In-process directory backed by a dict of tenant id -> members."""

    def __init__(self, members: Optional[Dict[str, List[Member]]] = None):
        self._members: Dict[str, List[Member]] = dict(members or {})

    def members_for(self, tenant_id: str) -> List[Member]:
        return list(self._members.get(tenant_id, []))

    def add(self, tenant_id: str, member: Member) -> None:
        self._members.setdefault(tenant_id, []).append(member)

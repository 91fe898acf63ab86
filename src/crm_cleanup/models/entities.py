"""
Entity models for the CRM cleanup.

Dependency hierarchy (parents first):
- Account: Root entity, a tenant/customer (stored in the `clients` table)
- Project: Belongs to an Account
- Lead: Belongs to a Project and/or directly to an Account
- Conversation: WhatsApp thread with a Lead, optionally scoped to a Project
- Membership: Junction row linking a user to one of the four kinds above

The cleanup only reads and deletes these rows; the CRM owns their lifecycle.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityKind(str, Enum):
    """Entity kinds in presentation order (parents first)."""

    ACCOUNTS = 'accounts'
    PROJECTS = 'projects'
    LEADS = 'leads'
    CONVERSATIONS = 'conversations'
    MEMBERSHIPS = 'memberships'

    @property
    def table(self) -> str | None:
        """Backing table; memberships span four tables, see MembershipVariant."""
        return _KIND_TABLES.get(self)


_KIND_TABLES = {
    EntityKind.ACCOUNTS: 'clients',
    EntityKind.PROJECTS: 'projects',
    EntityKind.LEADS: 'leads',
    EntityKind.CONVERSATIONS: 'conversations',
}


# Leaves first. Never reorder: deleting a parent first orphans its children.
DELETION_ORDER: tuple[EntityKind, ...] = (
    EntityKind.MEMBERSHIPS,
    EntityKind.CONVERSATIONS,
    EntityKind.LEADS,
    EntityKind.PROJECTS,
    EntityKind.ACCOUNTS,
)


class MembershipVariant(str, Enum):
    """The four junction tables, named after the parent kind they reference."""

    ACCOUNT = 'account'
    PROJECT = 'project'
    LEAD = 'lead'
    CONVERSATION = 'conversation'

    @property
    def table(self) -> str:
        return _MEMBERSHIP_TABLES[self]

    @property
    def parent_column(self) -> str:
        return _MEMBERSHIP_COLUMNS[self]

    @property
    def parent_kind(self) -> EntityKind:
        return _MEMBERSHIP_PARENTS[self]


_MEMBERSHIP_TABLES = {
    MembershipVariant.ACCOUNT: 'client_members',
    MembershipVariant.PROJECT: 'project_members',
    MembershipVariant.LEAD: 'lead_members',
    MembershipVariant.CONVERSATION: 'conversation_members',
}

_MEMBERSHIP_COLUMNS = {
    MembershipVariant.ACCOUNT: 'client_id',
    MembershipVariant.PROJECT: 'project_id',
    MembershipVariant.LEAD: 'lead_id',
    MembershipVariant.CONVERSATION: 'conversation_id',
}

_MEMBERSHIP_PARENTS = {
    MembershipVariant.ACCOUNT: EntityKind.ACCOUNTS,
    MembershipVariant.PROJECT: EntityKind.PROJECTS,
    MembershipVariant.LEAD: EntityKind.LEADS,
    MembershipVariant.CONVERSATION: EntityKind.CONVERSATIONS,
}


@dataclass(frozen=True)
class ClassifiableText:
    """
    Text fields the classifier looks at, projected once per record.

    Missing fields are empty strings, never None.
    """

    name_text: str
    name: str
    email: str
    phone: str
    created_at: datetime | None


class CrmRecord(BaseModel):
    """Fields shared by every row the cleanup reads."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description='Row identifier (UUIDs are stringified)')
    created_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)

    @field_validator('id', mode='before')
    @classmethod
    def stringify_id(cls, value: object) -> object:
        return value if value is None else str(value)

    @field_validator('*', mode='before')
    @classmethod
    def stringify_uuid_refs(cls, value: object) -> object:
        # asyncpg returns uuid columns as UUID objects
        return str(value) if isinstance(value, UUID) else value

    @property
    def display_name(self) -> str:
        return self.id


class Account(CrmRecord):
    """A tenant/customer. Root of the dependency graph."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None

    def classifiable_text(self) -> ClassifiableText:
        return _project_text(name=self.name, email=self.email, phone=self.phone, created_at=self.created_at)

    @property
    def display_name(self) -> str:
        return f"{self.name or self.id} ({self.email or 'No email'})"


class Project(CrmRecord):
    """A project owned by an Account."""

    name: str | None = None
    description: str | None = None
    account_id: str | None = None

    def classifiable_text(self) -> ClassifiableText:
        return _project_text(
            name=self.name,
            description=self.description,
            created_at=self.created_at,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Lead(CrmRecord):
    """A lead, attached to a Project, an Account, or both."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    project_id: str | None = None
    account_id: str | None = None

    def classifiable_text(self) -> ClassifiableText:
        return _project_text(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            created_at=self.created_at,
        )

    @property
    def display_name(self) -> str:
        full_name = ' '.join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email or self.phone or self.id


class Conversation(CrmRecord):
    """A conversation with a Lead. Only ever included relationally."""

    lead_id: str | None = None
    project_id: str | None = None


class Membership(CrmRecord):
    """A junction row; `parent_id` holds the variant's foreign key."""

    variant: MembershipVariant
    parent_id: str | None = None

    @property
    def table(self) -> str:
        return self.variant.table

    @property
    def display_name(self) -> str:
        return f"{self.variant.table}:{self.id}"


def _project_text(
    name: str | None = None,
    description: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    created_at: datetime | None = None,
) -> ClassifiableText:
    name_text = ' '.join([name or '', description or '', first_name or '', last_name or ''])
    return ClassifiableText(
        name_text=name_text.lower(),
        name=(name or '').lower(),
        email=(email or '').lower(),
        phone=phone or '',
        created_at=created_at,
    )


ClassifiableRecord = Account | Project | Lead
AnyRecord = Account | Project | Lead | Conversation | Membership

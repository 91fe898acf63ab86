"""
Data models for the CRM test-data cleanup.
"""

from .entities import (
    DELETION_ORDER,
    Account,
    AnyRecord,
    ClassifiableRecord,
    ClassifiableText,
    Conversation,
    CrmRecord,
    EntityKind,
    Lead,
    Membership,
    MembershipVariant,
    Project,
)
from .rules import ClassificationRules

__all__ = [
    'DELETION_ORDER',
    'Account',
    'AnyRecord',
    'ClassifiableRecord',
    'ClassifiableText',
    'Conversation',
    'CrmRecord',
    'EntityKind',
    'Lead',
    'Membership',
    'MembershipVariant',
    'Project',
    'ClassificationRules',
]

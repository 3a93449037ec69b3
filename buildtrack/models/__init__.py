from .activity import Activity, AuditAction, AuditLog
from .annotations import AnnotationType, DocumentAnnotation, Signature, SigningSession
from .discussions import Discussion, DiscussionComment, DiscussionReaction, ReactionType
from .documents import AccessLevel, Document, DocumentComment, DocumentShare, DocumentStatus
from .login_tokens import LoginToken
from .memberships import ProjectMember, ProjectRole
from .permits import Permit, PermitStatus, Risk, RiskImpact, RiskStatus, RiskType
from .properties import Milestone, MilestoneStatus, Property, PropertyStatus
from .user_sessions import UserSession
from .users import User, UserRole
from .vendors import RFQ, Bid, BidStatus, BudgetLine, RFQStatus, RFQVendor, Vendor

__all__ = [
    "AccessLevel",
    "Activity",
    "AnnotationType",
    "AuditAction",
    "AuditLog",
    "Bid",
    "BidStatus",
    "BudgetLine",
    "Discussion",
    "DiscussionComment",
    "DiscussionReaction",
    "Document",
    "DocumentAnnotation",
    "DocumentComment",
    "DocumentShare",
    "DocumentStatus",
    "LoginToken",
    "Milestone",
    "MilestoneStatus",
    "Permit",
    "PermitStatus",
    "ProjectMember",
    "ProjectRole",
    "Property",
    "PropertyStatus",
    "RFQ",
    "RFQStatus",
    "RFQVendor",
    "ReactionType",
    "Risk",
    "RiskImpact",
    "RiskStatus",
    "RiskType",
    "Signature",
    "SigningSession",
    "User",
    "UserRole",
    "UserSession",
    "Vendor",
]

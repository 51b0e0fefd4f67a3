from salesboard.models.audit_log import AuditLog
from salesboard.models.campaign import Campaign, CampaignParticipant
from salesboard.models.company import Company
from salesboard.models.invitation import Invitation
from salesboard.models.sale import Sale
from salesboard.models.user import User

__all__ = [
    "AuditLog",
    "Campaign",
    "CampaignParticipant",
    "Company",
    "Invitation",
    "Sale",
    "User",
]

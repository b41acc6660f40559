# Models package - normalized database models
from ghoste.models.user import User
from ghoste.models.ad_platform import MetaCredential
from ghoste.models.link import SmartLink, OneClickLink, PublicTrackLink
from ghoste.models.creative import AdCreative
from ghoste.models.campaign import AdCampaign, CampaignStatus
from ghoste.models.autopilot import (
    ApprovalRequest, ApprovalResponse, ManagerNotification,
    ManagerDecisionLog, AutopilotKillswitch
)
from ghoste.models.agent import AgentJob, ManagerSettings, JobTypes
from ghoste.models.wallet import Wallet, WalletTransaction
from ghoste.models.activity import AdsOperationLog, Operations
from ghoste.models.publish_queue import PublishQueueItem

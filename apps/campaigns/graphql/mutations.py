import strawberry
from apps.campaigns.state_machine import CampaignStateMachine
from .queries import campaigns_for
from .types import CampaignType


@strawberry.type
class CampaignMutations:

    @strawberry.mutation
    def approve_campaign(self, info: strawberry.Info, id: int, action: str = 'approve', reason: str = '') -> CampaignType:
        campaign = campaigns_for(info).get(id=id)
        machine = CampaignStateMachine(info.context.request.user.caller)
        return machine.decide(campaign, action, reason)

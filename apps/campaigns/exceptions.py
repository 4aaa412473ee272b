from rest_framework import status
from rest_framework.exceptions import APIException


class CampaignStateError(APIException):
    """An operation is not valid for the campaign's current lifecycle state."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Campaign is not in a state that allows this operation.'
    default_code = 'campaign_state_conflict'

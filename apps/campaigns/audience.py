"""Audience resolution for campaign targeting.

Targeting criteria are OR-ed together: explicit client ids, client types and
location entries. Each location entry ANDs the fields it specifies. A
campaign without criteria (and without ``all_clients``) resolves to nobody.
"""
import logging
from functools import reduce
from operator import or_

from django.db.models import Q

from apps.clients.models import Client

logger = logging.getLogger(__name__)

ACTIVE_STATUS = 'active'


def _location_filter(location):
    cond = Q()
    if location.get('city'):
        cond &= Q(city__icontains=location['city'])
    if location.get('state'):
        cond &= Q(state__icontains=location['state'])
    if location.get('pincode'):
        cond &= Q(pincode__iexact=location['pincode'])
    return cond if cond else None


def build_audience_filter(target_audience):
    """Return the Q object for the targeting criteria, or None when there are none."""
    target_audience = target_audience or {}
    conditions = []

    specific_clients = target_audience.get('specific_clients') or []
    if specific_clients:
        conditions.append(Q(pk__in=specific_clients))

    client_types = target_audience.get('client_types') or []
    if client_types:
        conditions.append(Q(client_type__in=client_types))

    location_conditions = [
        cond for cond in (_location_filter(loc) for loc in target_audience.get('locations') or [])
        if cond is not None
    ]
    if location_conditions:
        conditions.append(reduce(or_, location_conditions))

    if not conditions:
        return None
    return reduce(or_, conditions)


def resolve_audience(tenant_id, target_audience):
    """Active clients of the tenant matched by ``target_audience``."""
    target_audience = target_audience or {}
    queryset = Client.objects.filter(tenant_id=tenant_id, status=ACTIVE_STATUS)

    if target_audience.get('all_clients'):
        return queryset.order_by('pk')

    audience_filter = build_audience_filter(target_audience)
    if audience_filter is None:
        logger.info(f"Empty targeting for tenant {tenant_id}, resolving to no clients")
        return Client.objects.none()

    return queryset.filter(audience_filter).distinct().order_by('pk')


def is_channel_opted_in(client, channel, campaign_type):
    """A missing preference record counts as opted in."""
    preferences = (client.communication_preferences or {}).get(channel) or {}
    if campaign_type == 'offer' and preferences.get('offers') is False:
        return False
    return True


def eligible_pairs(clients, channels, campaign_type):
    for client in clients:
        for channel in channels:
            if is_channel_opted_in(client, channel, campaign_type):
                yield client, channel

"""Placeholder substitution for campaign subjects and content.

Only the six tokens below are recognised. Replacement is literal, global and
case-sensitive; any other ``{{...}}`` text is left untouched.
"""

PLACEHOLDERS = ('name', 'firstName', 'email', 'phone', 'city', 'state')


def personalization_variables(client):
    return {
        'name': client.display_name or 'Valued Customer',
        'firstName': client.first_name or client.contact_person_name or 'Customer',
        'email': client.email or '',
        'phone': client.phone or '',
        'city': client.city or '',
        'state': client.state or '',
        'clientType': client.client_type,
    }


def render(template, variables):
    if not template:
        return ''
    rendered = template
    for placeholder in PLACEHOLDERS:
        rendered = rendered.replace('{{%s}}' % placeholder, variables.get(placeholder) or '')
    return rendered


def personalize(template, client):
    return render(template, personalization_variables(client))

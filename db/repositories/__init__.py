"""Repository layer for the contact timeline.

Provides read queries over the crm tables:
- contacts: get_owned
- timeline_sources: fetch_*/count_* for emails, interactions, notes and
                    contact activities
"""

"""
Notifications Module
====================

Bounded context that records notification intents (SLA breaches and
warnings, assignments, status changes, comments) and relays them to
delivery channels.
"""

"""
Tickets Module
==============

Bounded context for tickets, their comments and the users who work them.
"""

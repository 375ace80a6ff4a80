"""
TicketDesk
==========

Customer support ticketing service with SLA tracking and alerting,
rule-based assignment and workload balancing.
"""

__version__ = "1.0.0"

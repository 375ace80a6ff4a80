"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (tickets, SLA,
assignment, notifications).

DO NOT add business logic from a bounded context to the shared kernel.
"""

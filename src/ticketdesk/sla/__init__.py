"""
SLA Module
==========

Bounded context for SLA policies, clock calculation, alert scanning and
compliance metrics.

Layers:
- domain: SLA clock, policies, calculator
- application: policy service, alert scanner, metrics
- infrastructure: SQLAlchemy store, scheduler, policy file
- interfaces: FastAPI router
"""

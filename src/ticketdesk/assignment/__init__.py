"""
Assignment Module
=================

Bounded context that decides who works a ticket: ordered conditional
rules, with a least-loaded balancer behind them, and periodic workload
rebalancing.
"""

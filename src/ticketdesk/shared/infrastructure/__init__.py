"""
Infrastructure Layer
=====================

Low-level technical concerns shared by all bounded contexts:
- Logging setup
"""

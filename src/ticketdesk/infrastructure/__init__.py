"""
Infrastructure Layer
=====================

Cross-context technical concerns (database engine and sessions).
"""

"""
LiaHub - role-scoped dashboards and LIA placement workflow.
"""

__version__ = "1.0.0"

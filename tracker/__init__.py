"""
Personal Tracker - Source Package

Tasks, habits, finance and a weekly planner, kept per user behind a small
REST API and mirrored by an optimistic sync client.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one user scope
2. The client shows a change at once and undoes it if the server refuses
3. Derived numbers are computed from records, never stored (except the
   habit streak, which is recomputed on every write)
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Tracker Team"

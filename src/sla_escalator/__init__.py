"""
SLA Tracker & Escalator
=======================

Priority-based SLA monitoring with tiered escalation notifications.
"""

__version__ = "1.0.0"

"""
SLA Monitoring Module
=====================

Bounded Context for Service Level Agreement monitoring and escalation.

Responsibilities:
- Resolve SLA allotments from ticket priority
- Evaluate tickets against their deadlines at a given instant
- Classify each ticket into one escalation tier
- Batch tickets per tier and notify once per tier per cycle
- Guard against overlapping evaluation cycles
"""

__version__ = "1.0.0"

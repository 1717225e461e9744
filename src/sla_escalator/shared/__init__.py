"""
Shared Kernel Module
====================

Generic infrastructure used by the SLA context: structured logging and
anything else that is not SLA business logic.

DO NOT add SLA business rules to the shared kernel.
"""

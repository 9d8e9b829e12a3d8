"""Timecard Compliance package.

Organized by feature modules (entries, compliance, hours, approvals, reports)
with pure computation at the center, thin repository adapters at the edge and
a thin Flask controller layer on top.
"""

"""
Scheduled agent runner.

Runs one named agent per invocation against the Base44 entity store and
records the AgentRun lifecycle (running → success | failed, plus a
SystemAlert on failure).
"""
__version__ = '1.0.0'

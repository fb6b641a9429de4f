"""Pipeline stages: envelope checks, record validation and the flow orchestrator."""

"""Release flow.

- resolver: turn the requested version into a validated target
- registry_gate / repository_gate: read-only preconditions
- scripts: optional reinstall and script execution
- rollback: undo the version bump after a failed publish
- orchestrator: the state machine tying it together
"""

"""
Applications module - EA license application workflow.

This module handles:
- Application and history entities and the status state machine
- TTL policy for terminal applications and their audit trail
- Application lifecycle (approve, cancel, reject, activate, expire, revoke)
- Notification failure tracking, retry and dead-letter ingestion
"""

"""Shared utilities — audit trail."""

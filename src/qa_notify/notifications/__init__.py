"""Notification dispatch subsystem."""

"""Stored procedure body templates (package data)."""

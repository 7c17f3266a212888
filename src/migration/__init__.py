"""Datastore format migrations.

This module reconciles the stored format version with the running tool
before any other datastore access happens in a process run.
"""

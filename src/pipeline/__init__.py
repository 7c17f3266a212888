"""Streaming dump and restore pipeline.

This module chunks transformed rows into the datastore, replays them back,
and reports transfer progress for long-running operations.
"""

"""Durable object storage layer.

This module persists dump chunks, index objects, and the format version
marker behind one backend-agnostic key/value contract.
"""

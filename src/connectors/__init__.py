"""Source and destination connectors.

This module reads rows from databases or files for dumps and writes
restored rows back into databases, files, or streams.
"""

"""Domain layer — variables, packages, and redaction.

Pure data and rules; no process execution and no host writes.
"""

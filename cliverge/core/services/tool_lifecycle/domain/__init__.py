"""
L1 Domain: pure functions over version strings and command templates.

Nothing in this layer spawns processes or touches the filesystem.
"""

"""
L2 Execution: the only layer that spawns processes.
"""

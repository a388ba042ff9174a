"""
L0 Data: static command tables for each package manager.
"""

"""
CLIverge: lifecycle and version resolution for AI command-line tools.
"""

__version__ = "0.1.0"

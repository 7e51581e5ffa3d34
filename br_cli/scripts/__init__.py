"""
br_cli/scripts

Command-line entry points.
"""

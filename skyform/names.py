"""
Service package names.
"""

MACIE = "macie"
MEDIALIVE = "medialive"

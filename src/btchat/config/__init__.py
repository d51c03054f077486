"""
Loads layered .cfg files and applies them to module-level settings.
"""

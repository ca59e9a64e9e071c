"""
Narrative vault: subject-keyed cache of generated consensus reports.
"""

# Models package init
"""
Daybook Backend — Document Models
==================================

What:  Collection names and save-time rules for the records the blog stores.
Why:   Records are plain dicts so they can live in MongoDB or in memory; these
       modules are the one place that knows what a post or comment contains.
"""

"""
Civilization - Canonical card lists for the civilization board game.

data/<ruleset>.json holds one ruleset each. Expansions name the ruleset
they build on with "extends" and only list what they add.
"""

"""
Games module - Game-specific data.

Each game has its own subpackage with its canonical decks, read by
civpbf.deck_catalog.
"""

"""
civpbf - Play-by-forum civilization board game sessions

Keeps many independent game sessions consistent while players act
asynchronously over days. The engine provides:
- Shuffled per-session decks built from canonical rulesets
- Drawing, revealing, discarding and trading items
- Turn sequencing
- Roster-wide votes on undoing a draw
- Public and private action logs
"""

__version__ = "0.1.0"

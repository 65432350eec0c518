"""Transfer and chip state machine with gameweek points aggregation."""

__version__ = "0.1.0"

"""ToN Stat Tool - round-state inference for the Terror of Nowhere game feed."""

__version__ = "1.0.0"

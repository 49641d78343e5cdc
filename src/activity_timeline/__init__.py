"""Reconstruct day timelines from manual activity markers and passive tracker events."""
